"""
Health Balancer (health_balancer)

여러 엔드포인트(서비스 복제본)에 요청을 분산시키는 클라이언트 측 로드밸런서입니다.
실제 트래픽 결과로 엔드포인트 헬스를 추적하고, 장애 엔드포인트는 피하며,
엔드포인트 장애(재시도)와 요청 자체의 오류(즉시 실패)를 구분합니다.
"""

from .endpoint import EndpointRecord, state_color
from .errors import (
    BalancerError,
    NoAvailableEndpoint,
    DeadlineExceeded,
    TransportError,
    ResourceNotFound,
    RequestRejected,
    RequestValidationError,
    ProtocolViolation,
    ConnectionFailure,
    TransportTimeout,
    ServerError,
)
from .registry import HealthRegistry
from .strategies import EndpointSelector
from .policy import ErrorClass, ErrorPolicy
from .transport import Transport, HttpTransport, HttpRequest
from .health_check import HealthChecker, http_health_check
from .config import BalancerConfig, load_config
from .balancer import RequestBalancer
from .logger import setup_console_logging, setup_file_logging

__all__ = [
    'EndpointRecord',
    'state_color',
    'BalancerError',
    'NoAvailableEndpoint',
    'DeadlineExceeded',
    'TransportError',
    'ResourceNotFound',
    'RequestRejected',
    'RequestValidationError',
    'ProtocolViolation',
    'ConnectionFailure',
    'TransportTimeout',
    'ServerError',
    'HealthRegistry',
    'EndpointSelector',
    'ErrorClass',
    'ErrorPolicy',
    'Transport',
    'HttpTransport',
    'HttpRequest',
    'HealthChecker',
    'http_health_check',
    'BalancerConfig',
    'load_config',
    'RequestBalancer',
    'setup_console_logging',
    'setup_file_logging',
]
