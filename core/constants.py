"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수 (settings.yaml에 값이 없을 때 사용)"""

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # 트랜잭션 스코프 전체 제한 시간 (초)
    SCOPE_TIMEOUT_SEC: float = 10.0

    # 잔액 조건부 업데이트 재시도 횟수
    CAS_MAX_RETRIES: int = 5

    # SQLite busy_timeout (밀리초)
    BUSY_TIMEOUT_MS: int = 30000

    ALLOW_INACTIVE_ACCOUNTS: bool = True


class Limits:
    """입력값 제한"""

    NOTES_MAX_LENGTH: int = 500
    ACCOUNT_NAME_MAX_LENGTH: int = 60
    DESCRIPTION_MAX_LENGTH: int = 1000

    # 금액 하한 (0 초과)
    MIN_AMOUNT_EXCLUSIVE: Decimal = Decimal("0")


class IdPrefix:
    """레코드 ID 접두사"""

    ACCOUNT: str = "acc"
    TRANSACTION: str = "tx"
    CATEGORY: str = "cat"
    PAYEE: str = "pay"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    DEFAULT_DB: Path = DATA_DIR / "ledger.db"
