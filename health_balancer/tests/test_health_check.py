"""
능동 헬스 체크 테스트
"""

import threading
from unittest.mock import patch, MagicMock

import requests

from health_balancer.health_check import HealthChecker, http_health_check
from health_balancer.strategies import EndpointSelector


class TestHttpHealthCheck:
    """http_health_check 테스트"""

    @patch('health_balancer.health_check.requests.get')
    def test_ok_response(self, mock_get):
        """2xx 응답이면 True"""
        mock_get.return_value = MagicMock(ok=True)
        check = http_health_check("/healthz", timeout=2)

        assert check("http://host:8000") is True
        mock_get.assert_called_once_with("http://host:8000/healthz", timeout=2)

    @patch('health_balancer.health_check.requests.get')
    def test_error_response(self, mock_get):
        """비정상 응답이면 False"""
        mock_get.return_value = MagicMock(ok=False)
        assert http_health_check()("http://host") is False


class TestHealthChecker:
    """HealthChecker 테스트"""

    def test_check_now_records_results(self):
        """probe 결과를 레지스트리에 기록"""
        def check(endpoint):
            if endpoint == "b":
                raise requests.ConnectionError("refused")
            return endpoint == "a"

        selector = EndpointSelector(["a", "b", "c"], clock=lambda: 10.0)
        checker = HealthChecker(selector, health_check=check)

        results = checker.check_now()

        assert results == {"a": True, "b": False, "c": False}
        assert selector.stats() == {"a": "green", "b": "yellow-1", "c": "yellow-1"}

    def test_uses_selector_default_check(self):
        """헬스 체크 함수를 생략하면 선택기의 기본 함수 사용"""
        selector = EndpointSelector(["a"], health_check=lambda ep: True)
        assert HealthChecker(selector).check_now() == {"a": True}

    def test_start_and_stop(self):
        """백그라운드 스레드가 주기적으로 체크하고 stop 으로 종료"""
        checked = threading.Event()

        def check(endpoint):
            checked.set()
            return True

        selector = EndpointSelector(["a"])
        checker = HealthChecker(selector, check_interval=0.01, health_check=check)

        checker.start()
        assert checked.wait(timeout=2.0)
        assert checker.running

        checker.stop()
        assert not checker.running
