"""
엔드포인트 선택기 테스트

헬스 기반 라운드 로빈, probe, 통계를 검증합니다.
"""

import threading
from unittest.mock import patch

import pytest

from health_balancer.strategies import EndpointSelector


def select_many(selector, count, now=10.0):
    return [selector.next(now)[0] for _ in range(count)]


class TestRoundRobin:
    """라운드 로빈 선택 테스트"""

    def test_cycles_in_insertion_order(self):
        """N 번마다 모든 엔드포인트를 삽입 순서대로 한 번씩 선택"""
        selector = EndpointSelector(["a", "b", "c"])
        assert select_many(selector, 6) == ["a", "b", "c", "a", "b", "c"]

    def test_green_is_not_degraded(self):
        """green 엔드포인트는 degraded 가 아님"""
        selector = EndpointSelector(["a"])
        assert selector.next(10.0) == ("a", False)

    def test_yellow_is_degraded(self):
        """yellow 엔드포인트는 degraded"""
        selector = EndpointSelector(["a"])
        selector.report_failure("a", 1.0, 2.0)
        assert selector.next(10.0) == ("a", True)

    def test_skips_red_endpoints(self):
        """red 엔드포인트는 선택하지 않음"""
        selector = EndpointSelector(["a", "b", "c"], yellow_states=1)
        selector.report_failure("b", 1.0, 2.0)
        assert select_many(selector, 4) == ["a", "c", "a", "c"]

    def test_shrinking_pool_keeps_cursor(self):
        """사용 가능 집합이 줄면 커서를 유지해 엔드포인트를 건너뛰지 않음"""
        selector = EndpointSelector(["a", "b", "c"], yellow_states=1)
        assert select_many(selector, 2) == ["a", "b"]

        selector.report_failure("b", 1.0, 2.0)

        assert select_many(selector, 3) == ["c", "a", "c"]

    def test_shrinking_by_more_than_one_wraps(self):
        """커서가 줄어든 집합 끝을 넘으면 처음으로 돌아감"""
        selector = EndpointSelector(["a", "b", "c", "d"], yellow_states=1)
        assert select_many(selector, 4) == ["a", "b", "c", "d"]

        for endpoint in ("b", "c", "d"):
            selector.report_failure(endpoint, 1.0, 2.0)

        assert selector.next(10.0) == ("a", False)

    def test_all_red_returns_none(self):
        """모든 엔드포인트가 red 면 None"""
        selector = EndpointSelector(["a", "b"], yellow_states=1)
        selector.report_failure("a", 1.0, 2.0)
        selector.report_failure("b", 1.0, 2.0)
        assert selector.next(10.0) is None

    def test_randomized_start(self):
        """randomize_start 는 무작위 위치 다음부터 선택"""
        with patch('health_balancer.strategies.random.randrange', return_value=1):
            selector = EndpointSelector(["a", "b", "c"], randomize_start=True)
        assert select_many(selector, 3) == ["c", "a", "b"]

    def test_empty_endpoints_raises(self):
        """빈 엔드포인트 목록"""
        with pytest.raises(ValueError):
            EndpointSelector([])

    def test_uses_clock_when_now_omitted(self):
        """now 를 생략하면 시계를 사용해 sweep"""
        selector = EndpointSelector(["a"], yellow_states=1, reset_time=60, clock=lambda: 500.0)
        selector.report_failure("a", 0.0, 480.0)
        assert selector.next() is None


class TestReporting:
    """성공/실패 보고 테스트"""

    def test_reports_use_t1(self):
        """헬스 계산에는 t1 만 사용"""
        selector = EndpointSelector(["a"])
        selector.report_failure("a", 1.0, 7.0)
        assert selector.registry.record("a").last_updated == 7.0
        selector.report_success("a", 8.0, 9.0)
        assert selector.registry.record("a").last_updated == 9.0
        assert selector.registry.level("a") == 0

    def test_report_for_removed_endpoint_is_ignored(self):
        """진행 중에 제거된 엔드포인트의 보고는 무시"""
        selector = EndpointSelector(["a", "b"])
        selector.set_endpoints(["a"])
        selector.report_failure("b", 1.0, 2.0)
        assert selector.stats() == {"a": "green"}

    def test_set_endpoints_same_set_keeps_state(self):
        """같은 집합으로 교체해도 상태 유지"""
        selector = EndpointSelector(["a", "b"])
        selector.report_failure("a", 1.0, 2.0)
        selector.set_endpoints(["a", "b"])
        selector.set_endpoints(["a", "b"])
        assert selector.stats() == {"a": "yellow-1", "b": "green"}


class TestProbe:
    """능동 헬스 체크 테스트"""

    def test_truthy_result_is_success(self):
        """참 결과는 성공으로 기록"""
        selector = EndpointSelector(["a"], clock=lambda: 10.0)
        selector.report_failure("a", 1.0, 2.0)
        assert selector.probe("a", lambda ep: True) is True
        assert selector.registry.level("a") == 0

    def test_falsy_result_is_failure(self):
        """거짓 결과는 실패로 기록"""
        selector = EndpointSelector(["a"], clock=lambda: 10.0)
        assert selector.probe("a", lambda ep: None) is False
        assert selector.registry.level("a") == 1

    def test_exception_is_recorded_then_reraised(self):
        """예외는 실패로 기록한 뒤 원래 예외를 다시 발생"""
        error = ConnectionError("refused")

        def check(endpoint):
            raise error

        selector = EndpointSelector(["a"], clock=lambda: 10.0)
        with pytest.raises(ConnectionError) as excinfo:
            selector.probe("a", check)

        assert excinfo.value is error
        assert selector.registry.level("a") == 1
        assert selector.registry.record("a").last_updated == 10.0

    def test_default_health_check(self):
        """생성 시 지정한 헬스 체크 함수 사용"""
        checked = []
        selector = EndpointSelector(["a"], health_check=lambda ep: checked.append(ep) or True)
        assert selector.probe("a") is True
        assert checked == ["a"]

    def test_missing_health_check_raises(self):
        """헬스 체크 함수가 없으면 예외"""
        selector = EndpointSelector(["a"])
        with pytest.raises(ValueError):
            selector.probe("a")


class TestStats:
    """통계 테스트"""

    def test_stats_does_not_mutate(self):
        """stats() 는 상태를 바꾸지 않음 (sweep 없음)"""
        selector = EndpointSelector(["a", "b"], yellow_states=2)
        selector.report_failure("a", 1.0, 2.0)
        selector.report_failure("a", 1.0, 2.0)

        first = selector.stats()
        second = selector.stats()

        assert first == second == {"a": "red", "b": "green"}
        assert selector.registry.record("b").last_updated == 0.0


class TestConcurrency:
    """동시 접근 테스트"""

    def test_parallel_callers(self):
        """여러 스레드의 선택/보고가 레벨 범위를 깨지 않음"""
        selector = EndpointSelector(["a", "b", "c", "d"], yellow_states=4)
        errors = []

        def worker(index):
            try:
                for i in range(200):
                    choice = selector.next(10.0)
                    if choice is None:
                        continue
                    endpoint, _ = choice
                    if (i + index) % 3 == 0:
                        selector.report_failure(endpoint, 10.0, 10.0)
                    else:
                        selector.report_success(endpoint, 10.0, 10.0)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        for endpoint in selector.endpoints:
            assert 0 <= selector.registry.level(endpoint) <= 4
