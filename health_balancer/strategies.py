"""
엔드포인트 선택 전략

헬스 레지스트리 위에서 동작하는 라운드 로빈 선택기입니다.
red 엔드포인트는 제외하고, 남은 엔드포인트 사이에서는 가중치 없이
삽입 순서대로 돌아가며 선택합니다.
"""

import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterable, Optional, Tuple

from .logger import get_logger
from .registry import HealthRegistry, DEFAULT_RESET_TIME, DEFAULT_YELLOW_STATES

logger = get_logger("strategies")


HealthCheckFn = Callable[[Hashable], Any]


@dataclass(frozen=True)
class ProbeResult:
    """능동 헬스 체크 결과"""
    endpoint: Hashable
    healthy: bool
    error: Optional[BaseException] = None


class EndpointSelector:
    """
    헬스 기반 라운드 로빈 선택기

    레지스트리와 라운드 로빈 커서를 하나의 잠금으로 보호합니다.
    선택기 인스턴스끼리는 아무것도 공유하지 않습니다.
    """

    def __init__(
        self,
        endpoints: Iterable[Hashable],
        yellow_states: int = DEFAULT_YELLOW_STATES,
        reset_time: float = DEFAULT_RESET_TIME,
        on_health_change: Optional[Callable[[str], None]] = None,
        health_check: Optional[HealthCheckFn] = None,
        randomize_start: bool = False,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            endpoints: 엔드포인트 목록
            yellow_states: red 이전의 yellow 단계 수
            reset_time: 무응답 엔드포인트가 한 단계 회복되는 시간 (초)
            on_health_change: 전체 헬스 색상 변경 콜백
            health_check: probe() 기본 헬스 체크 함수
            randomize_start: True 면 첫 선택 위치를 무작위로 정함
            clock: 현재 시각 함수 (초)
        """
        endpoints = list(endpoints)
        if not endpoints:
            raise ValueError("최소 하나 이상의 엔드포인트가 필요합니다")

        self._lock = threading.RLock()
        self._clock = clock
        self._health_check = health_check
        self._registry = HealthRegistry(
            endpoints,
            yellow_states=yellow_states,
            reset_time=reset_time,
            on_health_change=on_health_change,
        )
        size = len(self._registry)
        # next() 는 커서를 먼저 전진시키므로 마지막 위치에서 시작하면 첫 엔드포인트부터 선택
        self._counter = random.randrange(size) if randomize_start else size - 1
        self._last_size = size

    @property
    def registry(self) -> HealthRegistry:
        return self._registry

    @property
    def endpoints(self) -> Tuple[Hashable, ...]:
        with self._lock:
            return self._registry.endpoints

    def set_endpoints(self, endpoints: Iterable[Hashable]) -> None:
        """엔드포인트 집합 교체 (같은 집합이면 상태 변화 없음)"""
        with self._lock:
            added, removed = self._registry.replace_endpoints(endpoints)
        if added or removed:
            logger.info(f"엔드포인트 갱신: 추가 {added}, 제거 {removed}")

    def next(self, now: Optional[float] = None) -> Optional[Tuple[Hashable, bool]]:
        """
        다음에 시도할 엔드포인트 선택

        Returns:
            (엔드포인트, is_degraded) 튜플, 사용 가능한 엔드포인트가 없으면 None
        """
        now = self._clock() if now is None else now
        with self._lock:
            usable = self._registry.usable(now)
            if not usable:
                return None

            size = len(usable)
            # 사용 가능 집합이 줄었으면 같은 위치를 유지해 건너뛰는 엔드포인트가 없게 함
            if size >= self._last_size:
                self._counter += 1
            if self._counter >= size:
                self._counter = 0
            self._last_size = size

            endpoint, level = usable[self._counter]
        return endpoint, level != 0

    def report_success(self, endpoint: Hashable, t0: float, t1: float) -> None:
        """성공 보고 (t0 는 지연 측정용, 헬스 계산에는 t1 만 사용)"""
        self._report(endpoint, t1, success=True)

    def report_failure(self, endpoint: Hashable, t0: float, t1: float) -> None:
        """실패 보고"""
        self._report(endpoint, t1, success=False)

    def _report(self, endpoint: Hashable, now: float, success: bool) -> None:
        with self._lock:
            if endpoint not in self._registry:
                logger.debug(f"제거된 엔드포인트 보고 무시: {endpoint}")
                return
            if success:
                self._registry.record_success(endpoint, now)
            else:
                self._registry.record_failure(endpoint, now)

    def probe(self, endpoint: Hashable, health_check: Optional[HealthCheckFn] = None) -> bool:
        """
        능동 헬스 체크

        health_check(endpoint) 결과가 참이면 성공, 거짓이면 실패로 기록합니다.
        예외가 발생하면 실패로 기록한 뒤 원래 예외를 다시 발생시킵니다.

        Raises:
            ValueError: 헬스 체크 함수가 지정되지 않은 경우
        """
        check = health_check or self._health_check
        if check is None:
            raise ValueError("헬스 체크 함수가 지정되지 않았습니다")

        t0 = self._clock()
        result = self._run_probe(endpoint, check)
        if result.healthy:
            self.report_success(endpoint, t0, self._clock())
        else:
            self.report_failure(endpoint, t0, self._clock())

        if result.error is not None:
            raise result.error
        return result.healthy

    @staticmethod
    def _run_probe(endpoint: Hashable, check: HealthCheckFn) -> ProbeResult:
        try:
            return ProbeResult(endpoint=endpoint, healthy=bool(check(endpoint)))
        except Exception as e:
            return ProbeResult(endpoint=endpoint, healthy=False, error=e)

    def stats(self) -> Dict[Hashable, str]:
        """엔드포인트별 색상 (로깅/대시보드용)"""
        with self._lock:
            return dict(self._registry.snapshot())
