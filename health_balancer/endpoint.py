"""
엔드포인트 상태 데이터 클래스

엔드포인트별 헬스 레벨과 마지막 갱신 시각을 담는 레코드입니다.
"""

from dataclasses import dataclass, replace
from typing import Hashable


GREEN = "green"
RED = "red"

# 한 번도 갱신되지 않은 레코드의 타임스탬프
NEVER_UPDATED = 0.0


@dataclass(frozen=True)
class EndpointRecord:
    """엔드포인트 헬스 레코드 (불변, 갱신 시 새 객체로 교체)"""
    health_level: int = 0                  # 0=green, 1..Y-1=yellow-N, Y=red
    last_updated: float = NEVER_UPDATED    # 마지막 상태 전이 시각 (초)

    def moved(self, change: int, yellow_states: int, now: float) -> 'EndpointRecord':
        """레벨을 change 만큼 이동한 새 레코드 (0..yellow_states 범위로 제한)"""
        level = min(max(self.health_level + change, 0), yellow_states)
        return replace(self, health_level=level, last_updated=now)

    def is_usable(self, yellow_states: int) -> bool:
        return self.health_level < yellow_states


def state_color(level: int, yellow_states: int) -> str:
    """
    헬스 레벨을 색상 문자열로 변환

    0 -> "green", yellow_states -> "red", 그 외 -> "yellow-<level>"
    """
    if level == 0:
        return GREEN
    if level >= yellow_states:
        return RED
    return f"yellow-{level}"


def normalize_endpoint(endpoint: Hashable) -> Hashable:
    """URL 형태의 엔드포인트는 끝의 '/'를 제거"""
    if isinstance(endpoint, str):
        return endpoint.strip().rstrip('/')
    return endpoint
