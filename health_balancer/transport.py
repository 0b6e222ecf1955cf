"""
전송 계층

로드밸런서가 엔드포인트 한 곳에 요청을 한 번 보낼 때 사용하는 협력 객체입니다.
전송 계층은 내부적으로 재시도하지 않으며, 실패는 분류 가능한
TransportError 로 알려야 합니다.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Optional, Union

import requests
from requests.adapters import HTTPAdapter

from .errors import (
    ConnectionFailure,
    ProtocolViolation,
    RequestRejected,
    RequestValidationError,
    ResourceNotFound,
    ServerError,
    TransportError,
    TransportTimeout,
)


class Transport(ABC):
    """전송 계층 기본 클래스"""

    def validate(self, request: Any) -> None:
        """
        전송 전 요청 검증 (기본 구현은 검증하지 않음)

        Raises:
            RequestValidationError: 요청이 잘못된 경우
        """

    @abstractmethod
    def call(self, endpoint: Hashable, request: Any) -> Any:
        """
        엔드포인트에 요청 한 번 전송

        Returns:
            응답 객체

        Raises:
            TransportError: 분류된 전송 오류
        """
        pass

    def close(self) -> None:
        pass


ALLOWED_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})
NOT_FOUND_STATUSES = frozenset({404, 410})
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})

# 엔드포인트 URL 설정 오류 (재시도해도 해결되지 않음)
INVALID_URL_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
)


@dataclass
class HttpRequest:
    """엔드포인트 기준 상대 경로로 표현된 HTTP 요청"""
    method: str = "GET"
    path: str = "/"
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    json: Any = None
    data: Any = None

    def __post_init__(self):
        self.method = self.method.upper()


class HostnameOverrideAdapter(HTTPAdapter):
    """
    TLS 인증서 호스트명 검증 대상을 지정한 이름으로 바꾸는 어댑터

    IP 주소로 접속하면서 인증서는 서비스 도메인으로 검증해야 할 때 사용합니다.
    """

    def __init__(self, expected_hostname: str, **kwargs):
        self.expected_hostname = expected_hostname
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs['assert_hostname'] = self.expected_hostname
        return super().init_poolmanager(*args, **kwargs)


class HttpTransport(Transport):
    """
    requests 기반 HTTP 전송 계층

    응답 상태 코드와 requests 예외를 TransportError 계열로 변환합니다.
    """

    def __init__(
        self,
        timeout: float = 10,
        verify_ssl: Union[bool, str] = True,
        expected_hostname: Optional[str] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Args:
            timeout: 시도 단위 요청 타임아웃 (초)
            verify_ssl: 인증서 검증 여부 또는 CA 번들 경로
            expected_hostname: 인증서 검증에 사용할 호스트명 (None 이면 URL 호스트)
            session: 사용할 requests 세션 (None 이면 새로 생성)
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.expected_hostname = expected_hostname
        self._session = session or requests.Session()
        if expected_hostname:
            self._session.mount("https://", HostnameOverrideAdapter(expected_hostname))

    def validate(self, request: HttpRequest) -> None:
        if not isinstance(request, HttpRequest):
            raise RequestValidationError(f"HttpRequest 가 아닙니다: {type(request).__name__}")
        if request.method not in ALLOWED_METHODS:
            raise RequestValidationError(f"지원하지 않는 메서드입니다: {request.method}")
        if not request.path.startswith('/'):
            raise RequestValidationError(f"경로는 '/' 로 시작해야 합니다: {request.path}")
        if request.json is not None and request.data is not None:
            raise RequestValidationError("json 과 data 는 함께 사용할 수 없습니다")

    def call(self, endpoint: str, request: HttpRequest) -> requests.Response:
        url = f"{endpoint}{request.path}"
        try:
            response = self._session.request(
                request.method,
                url,
                params=request.params or None,
                headers=request.headers or None,
                json=request.json,
                data=request.data,
                timeout=self.timeout,
                verify=self.verify_ssl,
                allow_redirects=False,
            )
        except requests.Timeout as e:
            raise TransportTimeout(f"요청 시간 초과 ({self.timeout}초): {url}", endpoint) from e
        except requests.ConnectionError as e:
            raise ConnectionFailure(f"연결 실패: {url}: {e}", endpoint) from e
        except INVALID_URL_ERRORS as e:
            raise ProtocolViolation(f"잘못된 엔드포인트 URL: {url}: {e}", endpoint) from e
        except requests.RequestException as e:
            raise TransportError(f"API 요청 실패: {url}: {e}", endpoint) from e

        self._raise_for_status(endpoint, url, response)
        return response

    @staticmethod
    def _raise_for_status(endpoint: str, url: str, response: requests.Response) -> None:
        status = response.status_code
        if status < 300:
            return
        message = f"{status} {response.reason}: {url}"
        if status in NOT_FOUND_STATUSES:
            raise ResourceNotFound(message, endpoint, status)
        if status in RETRYABLE_CLIENT_STATUSES or status >= 500:
            raise ServerError(message, endpoint, status)
        if status >= 400:
            raise RequestRejected(message, endpoint, status)
        # 재시도하지 않으므로 리다이렉트는 설정 오류로 취급
        raise ProtocolViolation(f"예상하지 못한 응답 {message}", endpoint, status)

    def close(self) -> None:
        self._session.close()


def decode_json(response: requests.Response, endpoint: Optional[str] = None) -> Any:
    """JSON 응답 해석 (실패 시 ProtocolViolation)"""
    try:
        return response.json()
    except ValueError as e:
        raise ProtocolViolation(f"응답 파싱 실패: {e}", endpoint, response.status_code) from e
