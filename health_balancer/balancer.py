"""
메인 로드밸런서 클래스

요청 하나를 여러 엔드포인트에 걸쳐 재시도하며 실행합니다.
재시도 가능한 오류는 엔드포인트를 감점하고 다른 엔드포인트로 넘어가고,
치명적 오류는 즉시 호출자에게 그대로 전달합니다.
"""

import time
from typing import Any, Callable, Dict, Hashable, Iterable, Optional

from .config import BalancerConfig, load_config
from .endpoint import normalize_endpoint
from .errors import DeadlineExceeded, NoAvailableEndpoint
from .health_check import HealthChecker, http_health_check
from .logger import get_logger
from .policy import ErrorClass, ErrorPolicy
from .registry import DEFAULT_RESET_TIME, DEFAULT_YELLOW_STATES
from .strategies import EndpointSelector
from .transport import HttpTransport, Transport

logger = get_logger("balancer")


DEFAULT_TIMEOUT_MS = 10000


class RequestBalancer:
    """
    헬스 기반 클라이언트 측 로드밸런서

    여러 스레드에서 동시에 execute() 를 호출할 수 있습니다. 공유 상태는
    선택기의 헬스 레지스트리와 라운드 로빈 커서뿐이며, 전송 호출 자체는
    잠금 밖에서 실행됩니다.
    """

    def __init__(
        self,
        endpoints: Iterable[Hashable],
        transport: Transport,
        yellow_states: int = DEFAULT_YELLOW_STATES,
        reset_time: float = DEFAULT_RESET_TIME,
        on_health_change: Optional[Callable[[str], None]] = None,
        error_policy: Optional[ErrorPolicy] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        health_check: Optional[Callable[[Hashable], bool]] = None,
        health_check_interval: Optional[float] = None,
        randomize_start: bool = False,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            endpoints: 엔드포인트 목록
            transport: 엔드포인트 한 곳에 요청을 보내는 전송 계층
            yellow_states: red 이전의 yellow 단계 수
            reset_time: 무응답 엔드포인트가 한 단계 회복되는 시간 (초)
            on_health_change: 전체 헬스 색상 변경 콜백
            error_policy: 오류 분류 정책 (None 이면 기본 정책)
            timeout_ms: execute() 기본 재시도 예산 (밀리초)
            health_check: probe 용 헬스 체크 함수
            health_check_interval: 지정하면 백그라운드 헬스 체크 시작 (초, health_check 필요)
            randomize_start: 라운드 로빈 시작 위치 무작위화
            clock: 현재 시각 함수 (초)
        """
        endpoints = [normalize_endpoint(ep) for ep in endpoints]
        if not endpoints:
            raise ValueError("최소 하나 이상의 엔드포인트가 필요합니다")
        if health_check_interval and health_check is None:
            raise ValueError("health_check_interval 을 사용하려면 health_check 함수가 필요합니다")

        self._transport = transport
        self._policy = error_policy or ErrorPolicy()
        self._timeout_ms = timeout_ms
        self._clock = clock
        self._user_on_health_change = on_health_change
        self._selector = EndpointSelector(
            endpoints,
            yellow_states=yellow_states,
            reset_time=reset_time,
            on_health_change=self._on_health_change,
            health_check=health_check,
            randomize_start=randomize_start,
            clock=clock,
        )

        self._health_checker: Optional[HealthChecker] = None
        if health_check_interval:
            self._health_checker = HealthChecker(self._selector, check_interval=health_check_interval)
            self._health_checker.start()

    def _on_health_change(self, color: str) -> None:
        """전체 헬스 색상 변경 콜백"""
        if color == "green":
            logger.info(f"전체 헬스 변경: {color}")
        else:
            logger.warning(f"전체 헬스 변경: {color}")
        if self._user_on_health_change:
            self._user_on_health_change(color)

    @classmethod
    def from_settings(cls, config: BalancerConfig, **kwargs) -> 'RequestBalancer':
        """BalancerConfig 로 HttpTransport 기반 로드밸런서 생성"""
        config.validate()
        transport = kwargs.pop('transport', None) or HttpTransport(
            timeout=config.request_timeout,
            verify_ssl=config.verify_ssl,
            expected_hostname=config.expected_hostname,
        )
        if config.health_check_enabled:
            kwargs.setdefault('health_check', http_health_check(
                config.health_check_path, timeout=config.request_timeout
            ))
            kwargs.setdefault('health_check_interval', config.health_check_interval)

        return cls(
            endpoints=config.endpoints,
            transport=transport,
            yellow_states=config.yellow_states,
            reset_time=config.reset_time,
            error_policy=ErrorPolicy.from_config(config.error_policy),
            timeout_ms=config.timeout_ms,
            randomize_start=config.randomize_start,
            **kwargs
        )

    @classmethod
    def from_config(cls, config_path: str, **kwargs) -> 'RequestBalancer':
        """
        YAML/JSON 설정 파일에서 로드

        Args:
            config_path: 설정 파일 경로
        """
        return cls.from_settings(load_config(config_path), **kwargs)

    @classmethod
    def from_env(cls, **kwargs) -> 'RequestBalancer':
        """환경변수에서 로드 (BalancerConfig.from_env 참고)"""
        return cls.from_settings(BalancerConfig.from_env(), **kwargs)

    @property
    def selector(self) -> EndpointSelector:
        return self._selector

    @property
    def endpoints(self):
        return self._selector.endpoints

    def set_endpoints(self, endpoints: Iterable[Hashable]) -> None:
        """런타임에 엔드포인트 집합 교체 (진행 중인 요청과 동시에 호출 가능)"""
        self._selector.set_endpoints([normalize_endpoint(ep) for ep in endpoints])

    def stats(self) -> Dict[Hashable, str]:
        """엔드포인트별 헬스 색상"""
        return self._selector.stats()

    def probe(self, endpoint: Hashable, health_check: Optional[Callable[[Hashable], bool]] = None) -> bool:
        """능동 헬스 체크 (EndpointSelector.probe 참고)"""
        return self._selector.probe(normalize_endpoint(endpoint), health_check)

    def execute(self, request: Any, timeout_ms: Optional[int] = None) -> Any:
        """
        요청 실행 (로드밸런싱 + 재시도)

        Args:
            request: 전송 계층에 그대로 전달할 요청
            timeout_ms: 전체 재시도 예산 (None 이면 기본값)

        Returns:
            전송 계층의 성공 응답

        Raises:
            NoAvailableEndpoint: 모든 엔드포인트가 red
            DeadlineExceeded: 재시도 가능한 오류가 계속되어 예산 소진
            Exception: 치명적 오류는 원래 예외 그대로
        """
        # 잘못된 요청은 어떤 엔드포인트에도 보내지 않음
        self._transport.validate(request)

        budget = (self._timeout_ms if timeout_ms is None else timeout_ms) / 1000.0
        started = self._clock()
        deadline = started + budget
        attempts = 0
        last_error: Optional[BaseException] = None

        while True:
            now = self._clock()
            if attempts and now >= deadline:
                raise self._deadline_exceeded(last_error, attempts, now - started)

            choice = self._selector.next(now)
            if choice is None:
                logger.error(f"사용 가능한 엔드포인트가 없습니다: {self.stats()}")
                raise NoAvailableEndpoint(last_error=last_error) from last_error

            endpoint, degraded = choice
            logger.debug(f"시도 {attempts + 1}: {endpoint} (degraded={degraded})")

            t0 = self._clock()
            try:
                response = self._transport.call(endpoint, request)
            except Exception as e:
                t1 = self._clock()
                error_class = self._policy.classify(e)
                if error_class.penalizes:
                    self._selector.report_failure(endpoint, t0, t1)

                if error_class is not ErrorClass.RETRYABLE:
                    logger.error(f"치명적 오류 ({error_class.value}): {endpoint}: {e!r}")
                    raise

                attempts += 1
                last_error = e
                logger.warning(f"재시도 가능한 오류: {endpoint}: {e!r}")
                if t1 >= deadline:
                    raise self._deadline_exceeded(last_error, attempts, t1 - started) from e
                continue

            self._selector.report_success(endpoint, t0, self._clock())
            return response

    @staticmethod
    def _deadline_exceeded(last_error: BaseException, attempts: int, elapsed: float) -> DeadlineExceeded:
        error = DeadlineExceeded(last_error, attempts, elapsed)
        error.__cause__ = last_error
        logger.error(str(error))
        return error

    def close(self):
        """리소스 정리"""
        if self._health_checker:
            self._health_checker.stop()
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
