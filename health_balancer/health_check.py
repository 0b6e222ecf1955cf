"""
능동 헬스 체크

백그라운드 스레드에서 주기적으로 각 엔드포인트를 probe 합니다.
결과는 실제 트래픽과 같은 헬스 레지스트리에 반영됩니다.
"""

import threading
from typing import Callable, Hashable, Optional

import requests

from .logger import get_logger
from .strategies import EndpointSelector

logger = get_logger("health_check")


def http_health_check(path: str = "/health", timeout: float = 5) -> Callable[[str], bool]:
    """
    HTTP GET 헬스 체크 함수 생성

    Args:
        path: 엔드포인트 기준 헬스 체크 경로
        timeout: 요청 타임아웃 (초)

    Returns:
        check(endpoint) -> 2xx 응답이면 True
    """
    def check(endpoint: str) -> bool:
        response = requests.get(f"{endpoint}{path}", timeout=timeout)
        return response.ok

    return check


class HealthChecker:
    """
    엔드포인트 헬스 체커

    selector.probe() 를 주기적으로 호출합니다. probe 예외는 레지스트리에
    실패로 기록된 뒤 이곳에서 경고로 남깁니다.
    """

    def __init__(
        self,
        selector: EndpointSelector,
        check_interval: float = 30,
        health_check: Optional[Callable[[Hashable], bool]] = None
    ):
        """
        Args:
            selector: probe 결과를 기록할 선택기
            check_interval: 헬스 체크 주기 (초)
            health_check: 헬스 체크 함수 (None 이면 선택기의 기본 함수)
        """
        self.check_interval = check_interval
        self._selector = selector
        self._health_check = health_check
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def check_now(self) -> dict:
        """
        즉시 헬스 체크 수행

        Returns:
            엔드포인트별 probe 결과 (예외가 발생한 경우 False)
        """
        results = {}
        for endpoint in self._selector.endpoints:
            try:
                results[endpoint] = self._selector.probe(endpoint, self._health_check)
            except Exception as e:
                logger.warning(f"헬스 체크 실패: {endpoint}: {e}")
                results[endpoint] = False
        return results

    def _run(self):
        """백그라운드 스레드 실행"""
        while not self._stop_event.wait(self.check_interval):
            self.check_now()

    def start(self) -> None:
        """백그라운드 헬스 체크 시작"""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="health-checker", daemon=True)
        self._thread.start()
        logger.info(f"헬스 체크 시작 (주기 {self.check_interval}초)")

    def stop(self) -> None:
        """헬스 체크 중지"""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None
