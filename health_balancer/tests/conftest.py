"""
테스트 공용 픽스처

가짜 시계와 시나리오대로 응답하는 가짜 전송 계층을 제공합니다.
"""

import pytest

from health_balancer.transport import Transport


class FakeClock:
    """수동으로 진행하는 시계 (초)"""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedTransport(Transport):
    """
    엔드포인트별로 정해진 결과를 돌려주는 전송 계층

    outcomes 값이 예외 클래스면 해당 예외를 발생시키고, 그 외에는 값을 반환합니다.
    """

    def __init__(self, outcomes: dict, clock: FakeClock = None, latency: float = 0.0):
        self.outcomes = outcomes
        self.clock = clock
        self.latency = latency
        self.calls = []
        self.started_at = []
        self.closed = False

    def call(self, endpoint, request):
        self.calls.append(endpoint)
        if self.clock:
            self.started_at.append(self.clock())
            self.clock.advance(self.latency)
        outcome = self.outcomes[endpoint]
        if isinstance(outcome, type) and issubclass(outcome, BaseException):
            raise outcome(f"{outcome.__name__} from {endpoint}")
        return outcome

    def close(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()
