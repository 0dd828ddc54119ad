"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.
"""

from typing import AsyncGenerator

from fastapi import Depends, Header, HTTPException

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import Settings, get_settings
from core.ledger.engine import BalanceEngine
from core.ledger.store import LedgerStore
from core.ledger.validator import Validator
from core.utils.locks import KeyedLock


def get_app_settings() -> Settings:
    """애플리케이션 설정 반환"""
    return get_settings()


async def get_db_write() -> AsyncGenerator[SQLiteAdapter, None]:
    """DB 세션 반환 (쓰기 가능)
    
    요청마다 연결을 열고, 쓰기는 BEGIN IMMEDIATE로 다른 연결과 직렬화.
    """
    settings = get_settings()
    async with SQLiteAdapter(
        settings.db_path,
        readonly=False,
        busy_timeout_ms=settings.database.busy_timeout_ms,
    ) as db:
        yield db


# =========================================================================
# Ledger
# =========================================================================

# 프로세스 내 모든 요청이 공유하는 계좌/거래 lease 레지스트리
_lease_registry = KeyedLock()


def get_lease_registry() -> KeyedLock:
    """프로세스 전역 lease 레지스트리 반환"""
    return _lease_registry


def get_ledger_store(
    db: SQLiteAdapter = Depends(get_db_write),
    settings: Settings = Depends(get_app_settings),
) -> LedgerStore:
    """요청 연결에 바인딩된 Ledger 저장소"""
    return LedgerStore(db, cas_max_retries=settings.ledger.cas_max_retries)


def get_engine(
    store: LedgerStore = Depends(get_ledger_store),
    leases: KeyedLock = Depends(get_lease_registry),
    settings: Settings = Depends(get_app_settings),
) -> BalanceEngine:
    """Balance Engine 반환"""
    return BalanceEngine(
        store,
        validator=Validator(
            store,
            allow_inactive_accounts=settings.ledger.allow_inactive_accounts,
        ),
        leases=leases,
        scope_timeout_sec=settings.ledger.scope_timeout_sec,
    )


def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """인증 계층이 주입한 사용자 ID
    
    Raises:
        HTTPException: 헤더 없음 (401)
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()
