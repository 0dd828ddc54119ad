"""
로깅 설정

프로세스 시작 시 한 번 호출하여 루트 로거에 콘솔 + 일 단위 파일 핸들러를 단다.
파일은 logs/<프로세스>/<프로세스>.log 에 쌓이고 자정마다 교체된다.

사용법:
    from core.logging import setup_logging
    setup_logging("web", level=settings.web.log_level)
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_BACKUP_DAYS = 7

# 쿼리/요청마다 로그를 남기는 라이브러리 로거
QUIET_LOGGERS = ("aiosqlite", "asyncio", "uvicorn.access", "httpx", "httpcore")


def _file_handler(log_file: Path, level: int | str) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        backupCount=LOG_BACKUP_DAYS,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    return handler


def setup_logging(
    process_name: str,
    level: int | str = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """루트 로거 초기화

    다시 호출하면 기존 핸들러를 교체한다.

    Args:
        process_name: 로그 파일 이름 ("web" → web.log)
        level: 콘솔/파일 공통 레벨 ("DEBUG" 같은 문자열 허용)
        log_dir: 로그 디렉토리 (기본: logs/<process_name>)

    Returns:
        루트 Logger
    """
    log_file = (log_dir or Paths.LOGS_DIR / process_name) / f"{process_name}.log"

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    for handler in (console, _file_handler(log_file, level)):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(f"로깅 초기화: {process_name} ({logging.getLevelName(console.level)}) -> {log_file}")
    return root
