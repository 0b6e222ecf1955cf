"""
로드밸런서 설정 모듈

YAML/JSON 설정 파일 또는 환경변수에서 BalancerConfig 를 생성합니다.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import yaml

from .registry import DEFAULT_RESET_TIME, DEFAULT_YELLOW_STATES


TRUE_VALUES = ('1', 'true', 'yes', 'on')


@dataclass
class BalancerConfig:
    """로드밸런서 설정"""
    endpoints: List[str] = field(default_factory=list)

    # 헬스 레지스트리
    yellow_states: int = DEFAULT_YELLOW_STATES
    reset_time: float = DEFAULT_RESET_TIME

    # 요청 단위 재시도 예산 (밀리초) / 시도 단위 타임아웃 (초)
    timeout_ms: int = 10000
    request_timeout: float = 10

    # 라운드 로빈 시작 위치 무작위화
    randomize_start: bool = False

    # 능동 헬스 체크
    health_check_enabled: bool = False
    health_check_interval: float = 30
    health_check_path: str = "/health"

    # TLS
    verify_ssl: Union[bool, str] = True
    expected_hostname: Optional[str] = None

    # 오류 분류 재정의 (fatal / fatal_penalize / retryable / default)
    error_policy: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> 'BalancerConfig':
        """설정 값 검증 (잘못된 경우 ValueError)"""
        if not self.endpoints:
            raise ValueError("설정에 엔드포인트가 없습니다")
        if self.yellow_states < 1:
            raise ValueError(f"yellow_states 는 1 이상이어야 합니다: {self.yellow_states}")
        if self.reset_time < 0:
            raise ValueError(f"reset_time 은 음수일 수 없습니다: {self.reset_time}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms 는 0 보다 커야 합니다: {self.timeout_ms}")
        return self

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'BalancerConfig':
        """
        딕셔너리에서 설정 생성

        endpoints 항목은 URL 문자열 또는 {'url': ...} 형태를 모두 허용합니다.
        """
        endpoints = []
        for ep_config in config.get('endpoints', []) or []:
            endpoints.append(ep_config['url'] if isinstance(ep_config, dict) else ep_config)

        health_config = config.get('health_check', {}) or {}
        ssl_config = config.get('ssl', {}) or {}

        return cls(
            endpoints=endpoints,
            yellow_states=int(config.get('yellow_states', DEFAULT_YELLOW_STATES)),
            reset_time=float(config.get('reset_time', DEFAULT_RESET_TIME)),
            timeout_ms=int(config.get('timeout_ms', 10000)),
            request_timeout=float(config.get('request_timeout', 10)),
            randomize_start=bool(config.get('randomize_start', False)),
            health_check_enabled=bool(health_config.get('enabled', False)),
            health_check_interval=float(health_config.get('interval', 30)),
            health_check_path=health_config.get('path', "/health"),
            verify_ssl=ssl_config.get('verify', True),
            expected_hostname=ssl_config.get('expected_hostname'),
            error_policy=config.get('error_policy', {}) or {},
        ).validate()

    @classmethod
    def from_env(cls) -> 'BalancerConfig':
        """
        환경변수에서 설정 로드

        환경변수:
            BALANCER_ENDPOINTS: 콤마로 구분된 엔드포인트 URL 목록
            BALANCER_YELLOW_STATES: yellow 단계 수
            BALANCER_RESET_TIME: 회복 시간 (초)
            BALANCER_TIMEOUT_MS: 요청 단위 재시도 예산 (밀리초)
            BALANCER_REQUEST_TIMEOUT: 시도 단위 타임아웃 (초)
            BALANCER_RANDOMIZE_START: 라운드 로빈 시작 위치 무작위화 (true/false)
            BALANCER_HEALTH_CHECK: 능동 헬스 체크 활성화 (true/false)
            BALANCER_HEALTH_CHECK_INTERVAL: 헬스 체크 주기 (초)
            BALANCER_HEALTH_CHECK_PATH: 헬스 체크 경로
            BALANCER_VERIFY_SSL: 인증서 검증 (true/false)
            BALANCER_EXPECTED_HOSTNAME: 인증서 검증 호스트명
        """
        endpoints_str = os.getenv('BALANCER_ENDPOINTS', '')
        if not endpoints_str:
            raise ValueError("BALANCER_ENDPOINTS 환경변수가 설정되지 않았습니다")

        endpoints = [url.strip() for url in endpoints_str.split(',') if url.strip()]

        return cls(
            endpoints=endpoints,
            yellow_states=int(os.getenv('BALANCER_YELLOW_STATES', DEFAULT_YELLOW_STATES)),
            reset_time=float(os.getenv('BALANCER_RESET_TIME', DEFAULT_RESET_TIME)),
            timeout_ms=int(os.getenv('BALANCER_TIMEOUT_MS', '10000')),
            request_timeout=float(os.getenv('BALANCER_REQUEST_TIMEOUT', '10')),
            randomize_start=os.getenv('BALANCER_RANDOMIZE_START', 'false').lower() in TRUE_VALUES,
            health_check_enabled=os.getenv('BALANCER_HEALTH_CHECK', 'false').lower() in TRUE_VALUES,
            health_check_interval=float(os.getenv('BALANCER_HEALTH_CHECK_INTERVAL', '30')),
            health_check_path=os.getenv('BALANCER_HEALTH_CHECK_PATH', '/health'),
            verify_ssl=os.getenv('BALANCER_VERIFY_SSL', 'true').lower() in TRUE_VALUES,
            expected_hostname=os.getenv('BALANCER_EXPECTED_HOSTNAME') or None,
        ).validate()


def load_config(config_path: str) -> BalancerConfig:
    """
    YAML/JSON 설정 파일 로드

    Args:
        config_path: 설정 파일 경로 (.json 이외에는 YAML 로 해석)
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        if config_path.endswith('.json'):
            config = json.load(f)
        else:
            config = yaml.safe_load(f)

    if not isinstance(config, dict):
        raise ValueError(f"설정 파일 형식이 올바르지 않습니다: {config_path}")
    return BalancerConfig.from_dict(config)
