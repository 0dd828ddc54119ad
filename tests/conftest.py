"""
pytest 공통 fixture 정의

Ledger 저장소(SQLite / Mock)와 Balance Engine fixture.
"""

from decimal import Decimal
from pathlib import Path
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.mock.ledger_store import MockLedgerStore
from core.config.loader import Settings
from core.ledger.engine import BalanceEngine
from core.ledger.models import Account, AccountDraft
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.types import AccountType
from core.utils.locks import KeyedLock

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture(autouse=True)
def reset_settings() -> None:
    """테스트 간 Settings 싱글턴 격리"""
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncGenerator[SQLiteAdapter, None]:
    """테스트용 임시 DB (스키마 초기화 완료)"""
    adapter = SQLiteAdapter(tmp_path / "test_ledger.db")
    await adapter.connect()
    await init_ledger_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def ledger_store(db: SQLiteAdapter) -> LedgerStore:
    return LedgerStore(db)


@pytest.fixture
def mock_store() -> MockLedgerStore:
    return MockLedgerStore()


@pytest.fixture
def engine(ledger_store: LedgerStore) -> BalanceEngine:
    """SQLite 저장소 기반 엔진 (테스트별 lease 레지스트리)"""
    return BalanceEngine(ledger_store, leases=KeyedLock())


@pytest.fixture
def mock_engine(mock_store: MockLedgerStore) -> BalanceEngine:
    """비원자적 Mock 저장소 기반 엔진"""
    return BalanceEngine(mock_store, leases=KeyedLock())


def account_draft(
    name: str = "Checking",
    opening_balance: str = "0",
    currency: str = "USD",
    is_active: bool = True,
) -> AccountDraft:
    """계좌 생성 요청"""
    return AccountDraft(
        name=name,
        account_type=AccountType.CHECKING,
        currency=currency,
        opening_balance=Decimal(opening_balance),
        is_active=is_active,
    )


@pytest.fixture
def make_account() -> Callable[..., Awaitable[Account]]:
    """저장소에 계좌를 만드는 헬퍼
    
    사용 예시:
    ```python
    account = await make_account(ledger_store, "100")
    ```
    """
    async def _make(
        store,
        opening_balance: str = "0",
        name: str = "Checking",
        currency: str = "USD",
        is_active: bool = True,
        user_id: str = USER_ID,
    ) -> Account:
        return await store.create_account(
            user_id,
            account_draft(name, opening_balance, currency, is_active),
        )
    
    return _make
