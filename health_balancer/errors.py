"""
로드밸런서 예외 정의

BalancerError 계열은 로드밸런서가 직접 발생시키는 최종 오류이고,
TransportError 계열은 전송 계층이 분류해서 넘겨주는 시도 단위 오류입니다.
"""

from typing import Hashable, Optional


class BalancerError(Exception):
    """로드밸런서 오류 기본 클래스"""


class NoAvailableEndpoint(BalancerError):
    """모든 엔드포인트가 red 상태"""

    def __init__(self, message: str = "사용 가능한 엔드포인트가 없습니다",
                 last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.last_error = last_error


class DeadlineExceeded(BalancerError):
    """재시도 예산(timeout) 소진"""

    def __init__(self, last_error: BaseException, attempts: int, elapsed: float):
        super().__init__(
            f"요청 시간 초과: {attempts}회 시도, {elapsed:.3f}초 경과. "
            f"마지막 오류: {last_error!r}"
        )
        self.last_error = last_error
        self.attempts = attempts
        self.elapsed = elapsed


# =============================================================================
# 전송 계층 오류
# =============================================================================

class TransportError(Exception):
    """전송 계층 오류 기본 클래스"""

    def __init__(self, message: str = "", endpoint: Optional[Hashable] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class ResourceNotFound(TransportError):
    """리소스 없음 (404/410) - 엔드포인트는 정상 동작"""


class RequestRejected(TransportError):
    """요청 거부 (그 밖의 4xx) - 요청 자체의 문제"""


class RequestValidationError(TransportError, ValueError):
    """전송 전에 발견된 잘못된 요청"""


class ProtocolViolation(TransportError):
    """해석할 수 없는 응답 - 엔드포인트 설정 문제"""


class ConnectionFailure(TransportError):
    """연결 실패"""


class TransportTimeout(TransportError):
    """시도 단위 타임아웃"""


class ServerError(TransportError):
    """서버 측 오류 (5xx, 408, 429)"""
