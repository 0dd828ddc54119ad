"""
설정 로더

settings.yaml 로드 및 애플리케이션 설정 생성
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from core.constants import PROJECT_ROOT, Defaults, Paths


@dataclass(frozen=True)
class DatabaseConfig:
    """DB 연결 설정"""

    path: Path
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS


@dataclass(frozen=True)
class LedgerConfig:
    """Balance Engine 설정

    불변 데이터 구조로 런타임 변경 방지
    """

    scope_timeout_sec: float = Defaults.SCOPE_TIMEOUT_SEC
    cas_max_retries: int = Defaults.CAS_MAX_RETRIES
    allow_inactive_accounts: bool = Defaults.ALLOW_INACTIVE_ACCOUNTS


@dataclass(frozen=True)
class WebConfig:
    """Web 서버 설정"""

    host: str = Defaults.WEB_HOST
    port: int = Defaults.WEB_PORT
    log_level: str = Defaults.LOG_LEVEL


@dataclass(frozen=True)
class AppConfig:
    """전체 설정 묶음"""

    database: DatabaseConfig
    ledger: LedgerConfig
    web: WebConfig


class SettingsLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """섹션 조회 (없으면 빈 dict, dict가 아니면 오류)"""
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise SettingsLoadError(f"settings.yaml의 '{name}' 섹션 형식이 잘못되었습니다")
    return value


def _resolve_db_path(raw: str | None) -> Path:
    """DB 경로 해석 (상대 경로는 프로젝트 루트 기준, :memory: 는 그대로)"""
    if not raw:
        return Paths.DEFAULT_DB
    if raw == ":memory:":
        return Path(raw)
    path = Path(raw)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def parse_config(data: dict[str, Any]) -> AppConfig:
    """YAML dict를 AppConfig로 변환

    Args:
        data: yaml.safe_load 결과

    Returns:
        AppConfig 인스턴스

    Raises:
        SettingsLoadError: 값의 타입/범위가 잘못된 경우
    """
    db_section = _section(data, "database")
    ledger_section = _section(data, "ledger")
    web_section = _section(data, "web")

    try:
        database = DatabaseConfig(
            path=_resolve_db_path(db_section.get("path")),
            busy_timeout_ms=int(db_section.get("busy_timeout_ms", Defaults.BUSY_TIMEOUT_MS)),
        )
        ledger = LedgerConfig(
            scope_timeout_sec=float(
                ledger_section.get("scope_timeout_sec", Defaults.SCOPE_TIMEOUT_SEC)
            ),
            cas_max_retries=int(
                ledger_section.get("cas_max_retries", Defaults.CAS_MAX_RETRIES)
            ),
            allow_inactive_accounts=bool(
                ledger_section.get("allow_inactive_accounts", Defaults.ALLOW_INACTIVE_ACCOUNTS)
            ),
        )
        web = WebConfig(
            host=str(web_section.get("host", Defaults.WEB_HOST)),
            port=int(web_section.get("port", Defaults.WEB_PORT)),
            log_level=str(web_section.get("log_level", Defaults.LOG_LEVEL)).upper(),
        )
    except (TypeError, ValueError) as e:
        raise SettingsLoadError(f"settings.yaml 값 변환 실패: {e}") from e

    if ledger.scope_timeout_sec <= 0:
        raise SettingsLoadError("ledger.scope_timeout_sec는 0보다 커야 합니다")
    if ledger.cas_max_retries < 1:
        raise SettingsLoadError("ledger.cas_max_retries는 1 이상이어야 합니다")

    return AppConfig(database=database, ledger=ledger, web=web)


def load_config(path: Path | None = None) -> AppConfig:
    """settings.yaml 파일 로드

    파일이 없으면 기본값으로 구성.

    Args:
        path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        AppConfig 인스턴스

    Raises:
        SettingsLoadError: 파일 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        return parse_config({})

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        return parse_config({})

    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml 최상위는 매핑이어야 합니다")

    return parse_config(data)


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _config: AppConfig | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._config is None:
            self._config = load_config(settings_path)

    @property
    def db_path(self) -> Path:
        """DB 파일 경로"""
        assert self._config is not None
        return self._config.database.path

    @property
    def database(self) -> DatabaseConfig:
        assert self._config is not None
        return self._config.database

    @property
    def ledger(self) -> LedgerConfig:
        """Balance Engine 설정"""
        assert self._config is not None
        return self._config.ledger

    @property
    def web(self) -> WebConfig:
        assert self._config is not None
        return self._config.web

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._config = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
