"""
Loguru 기반 로깅 설정
로드밸런서 전체에서 사용하는 공용 로거입니다.

라이브러리이므로 import 시점에는 싱크를 추가하거나 제거하지 않습니다.
출력 위치는 애플리케이션이 정하고, 필요하면 setup_console_logging /
setup_file_logging 으로 싱크를 추가합니다.
"""
import os
import sys
from pathlib import Path
from loguru import logger

# =============================================================================
# 포맷 설정
# =============================================================================

# 콘솔용 포맷 (컬러 + 파일:라인)
CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <7}</level> | "
    "<cyan>{file.path}</cyan>:<cyan>{line}</cyan> in <cyan>{function}()</cyan> | "
    "<level>{message}</level>"
)

# 파일용 포맷 (플레인 텍스트)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | "
    "{level: <7} | "
    "{file.path}:{line} in {function}() | "
    "{message}"
)

LOG_LEVEL = os.getenv("HEALTH_BALANCER_LOG_LEVEL", "INFO").upper()

PACKAGE = "health_balancer"


def _package_only(record) -> bool:
    return (record["name"] or "").startswith(PACKAGE)


# =============================================================================
# 싱크 설정 함수
# =============================================================================

def setup_console_logging(level: str = LOG_LEVEL) -> int:
    """
    콘솔(stderr) 로깅 설정

    이 패키지의 메시지만 출력하며 기존 싱크는 건드리지 않습니다.

    Returns:
        추가된 핸들러 ID
    """
    return logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=True,
        filter=_package_only,
    )


def setup_file_logging(
    log_dir: str = "./logs",
    level: str = "DEBUG",
    rotation: str = "1 day",
    retention: str = "7 days"
) -> int:
    """
    파일 로깅 설정
    
    Args:
        log_dir: 로그 디렉토리 경로
        level: 로그 레벨
        rotation: 로테이션 주기
        retention: 보관 기간
        
    Returns:
        추가된 핸들러 ID
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    
    handler_id = logger.add(
        str(log_path / "{time:YYYY-MM-DD}_balancer.log"),
        format=FILE_FORMAT,
        level=level,
        rotation=rotation,
        retention=retention,
        encoding="utf-8",
        filter=_package_only,
    )
    
    logger.info(f"파일 로깅 시작: {log_path}")
    return handler_id


def get_logger(module_name: str = None):
    """
    모듈별 로거 반환
    
    사용 예:
        log = get_logger("registry")
        log.info("엔드포인트 갱신")
    """
    if module_name:
        return logger.bind(module=module_name)
    return logger


__all__ = [
    "logger",
    "get_logger",
    "setup_console_logging",
    "setup_file_logging",
    "CONSOLE_FORMAT",
    "FILE_FORMAT",
]
