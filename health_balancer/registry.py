"""
헬스 레지스트리

엔드포인트별 헬스 레벨을 관리하는 상태 머신입니다. I/O나 선택 정책은 없고
상태 전이 규칙만 담당합니다.

레벨 전이:
    * green (0): 성공 시 green 유지, 실패 시 yellow-1
    * yellow-N: 성공 시 한 단계 회복, 실패 시 한 단계 악화
    * red (yellow_states): 선택 대상에서 제외, reset_time 동안 갱신이 없으면
      sweep 에서 한 단계씩 회복

전체 헬스(가장 건강한 엔드포인트의 레벨)가 바뀔 때만 on_health_change 콜백을
호출합니다. 예를 들어 마지막 green 엔드포인트가 yellow 가 되면 yellow 가,
red 엔드포인트 하나가 yellow 로 돌아오면 곧바로 yellow 가 보고됩니다.
"""

from collections import OrderedDict
from typing import Callable, Hashable, Iterable, List, Optional, Tuple

from .endpoint import EndpointRecord, NEVER_UPDATED, state_color


DEFAULT_YELLOW_STATES = 4
DEFAULT_RESET_TIME = 300


class HealthRegistry:
    """
    엔드포인트 헬스 레지스트리

    스레드 안전하지 않습니다. 잠금은 소유자(EndpointSelector)가 담당합니다.
    """

    def __init__(
        self,
        endpoints: Iterable[Hashable],
        yellow_states: int = DEFAULT_YELLOW_STATES,
        reset_time: float = DEFAULT_RESET_TIME,
        on_health_change: Optional[Callable[[str], None]] = None
    ):
        """
        Args:
            endpoints: 엔드포인트 목록 (삽입 순서가 라운드 로빈 순서가 됨)
            yellow_states: red 이전의 yellow 단계 수 (1 이상)
            reset_time: 이 시간(초) 동안 갱신이 없으면 한 단계 회복
            on_health_change: 전체 헬스 색상이 바뀔 때 호출될 콜백
        """
        if yellow_states < 1:
            raise ValueError(f"yellow_states 는 1 이상이어야 합니다: {yellow_states}")
        if reset_time < 0:
            raise ValueError(f"reset_time 은 음수일 수 없습니다: {reset_time}")

        self.yellow_states = yellow_states
        self.reset_time = reset_time
        self._on_health_change = on_health_change
        self._min_level = 0
        self._records: 'OrderedDict[Hashable, EndpointRecord]' = OrderedDict()
        for endpoint in endpoints:
            self._records[endpoint] = EndpointRecord()

    @property
    def min_level(self) -> int:
        """전체 헬스 레벨 (가장 건강한 엔드포인트의 레벨)"""
        return self._min_level

    @property
    def endpoints(self) -> Tuple[Hashable, ...]:
        return tuple(self._records)

    def __contains__(self, endpoint: Hashable) -> bool:
        return endpoint in self._records

    def __len__(self) -> int:
        return len(self._records)

    def record(self, endpoint: Hashable) -> EndpointRecord:
        """엔드포인트 레코드 조회 (없으면 KeyError)"""
        return self._records[endpoint]

    def level(self, endpoint: Hashable) -> int:
        return self._records[endpoint].health_level

    def color_of(self, level: int) -> str:
        return state_color(level, self.yellow_states)

    def record_success(self, endpoint: Hashable, now: float) -> int:
        """성공 기록: 한 단계 회복 (0 에서는 타임스탬프만 갱신)"""
        return self._update(endpoint, -1, now)

    def record_failure(self, endpoint: Hashable, now: float) -> int:
        """실패 기록: 한 단계 악화 (red 에서는 타임스탬프만 갱신)"""
        return self._update(endpoint, 1, now)

    def _update(self, endpoint: Hashable, change: int, now: float) -> int:
        previous = self._records[endpoint]
        current = previous.moved(change, self.yellow_states, now)
        self._records[endpoint] = current

        level = current.health_level
        if level != previous.health_level:
            self._track_overall(level)
        return level

    def _track_overall(self, level: int) -> None:
        """전체 헬스 티어가 바뀌었을 때만 min_level 갱신 및 콜백 호출"""
        if level < self._min_level or (
            level > self._min_level and level == self._lowest_level()
        ):
            self._min_level = level
            self._notify(level)

    def _lowest_level(self) -> int:
        return min(record.health_level for record in self._records.values())

    def _notify(self, level: int) -> None:
        if self._on_health_change:
            self._on_health_change(self.color_of(level))

    def sweep(self, now: float) -> List[Hashable]:
        """
        reset_time 보다 오래 갱신되지 않은 엔드포인트를 한 단계 회복

        Returns:
            회복 처리(record_success)된 엔드포인트 목록
        """
        stale = [
            endpoint for endpoint, record in self._records.items()
            if now - record.last_updated > self.reset_time
        ]
        for endpoint in stale:
            self.record_success(endpoint, now)
        return stale

    def usable(self, now: float) -> List[Tuple[Hashable, int]]:
        """sweep 후 red 가 아닌 엔드포인트를 (엔드포인트, 레벨) 목록으로 반환"""
        self.sweep(now)
        return [
            (endpoint, record.health_level)
            for endpoint, record in self._records.items()
            if record.is_usable(self.yellow_states)
        ]

    def replace_endpoints(self, endpoints: Iterable[Hashable]) -> Tuple[List[Hashable], List[Hashable]]:
        """
        엔드포인트 집합 교체

        빠진 엔드포인트의 레코드는 버리고, 새 엔드포인트는 현재 min_level 로
        추가합니다. 기존 엔드포인트의 상태는 그대로 유지됩니다.

        Returns:
            (추가된 목록, 제거된 목록)
        """
        wanted = list(OrderedDict.fromkeys(endpoints))
        if not wanted:
            raise ValueError("엔드포인트 목록이 비어 있습니다")

        removed = [endpoint for endpoint in self._records if endpoint not in wanted]
        for endpoint in removed:
            del self._records[endpoint]

        if removed and self._records:
            lowest = self._lowest_level()
            if lowest != self._min_level:
                self._min_level = lowest
                self._notify(lowest)

        added = [endpoint for endpoint in wanted if endpoint not in self._records]
        for endpoint in added:
            self._records[endpoint] = EndpointRecord(
                health_level=self._min_level,
                last_updated=NEVER_UPDATED,
            )
        return added, removed

    def snapshot(self) -> 'OrderedDict[Hashable, str]':
        """엔드포인트별 색상 스냅샷 (상태 변경 없음)"""
        return OrderedDict(
            (endpoint, self.color_of(record.health_level))
            for endpoint, record in self._records.items()
        )
