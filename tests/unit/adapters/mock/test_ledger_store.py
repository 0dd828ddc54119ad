"""
MockLedgerStore 테스트
"""

import asyncio
from decimal import Decimal

import pytest

from adapters.interfaces import ILedgerStore
from adapters.mock.ledger_store import InjectedFailure, MockLedgerStore
from core.domain.errors import AccountNotFound, ValidationError
from core.ledger.models import AccountUpdate

USER = "user-1"


class TestMockLedgerStore:
    """Mock 저장소 테스트"""
    
    def test_implements_protocol(self, mock_store: MockLedgerStore) -> None:
        assert isinstance(mock_store, ILedgerStore)
        assert mock_store.is_atomic is False
    
    @pytest.mark.asyncio
    async def test_fail_next_skip_and_times(
        self, mock_store: MockLedgerStore, make_account
    ) -> None:
        """skip 만큼 통과 후 times 만큼 실패, 이후 정상"""
        account = await make_account(mock_store, "0")
        mock_store.fail_next("increment_account_balance", times=2, skip=1)
        
        outcomes = []
        for _ in range(4):
            try:
                await mock_store.increment_account_balance(
                    account.account_id, USER, Decimal("1")
                )
                outcomes.append("ok")
            except InjectedFailure:
                outcomes.append("fail")
        
        assert outcomes == ["ok", "fail", "fail", "ok"]
        assert (await mock_store.get_account(account.account_id, USER)).balance == Decimal("2")
    
    @pytest.mark.asyncio
    async def test_concurrent_increments_retry(
        self, mock_store: MockLedgerStore, make_account
    ) -> None:
        """조회-기록 사이 양보가 있어도 버전 조건으로 유실 없음"""
        account = await make_account(mock_store, "100")
        
        await asyncio.gather(
            mock_store.increment_account_balance(account.account_id, USER, Decimal("-10")),
            mock_store.increment_account_balance(account.account_id, USER, Decimal("-10")),
        )
        
        stored = await mock_store.get_account(account.account_id, USER)
        assert stored.balance == Decimal("80")
        assert stored.version == 3
        assert mock_store.cas_retries == 1
    
    @pytest.mark.asyncio
    async def test_update_account(self, mock_store: MockLedgerStore, make_account) -> None:
        """정보 수정은 잔액을 건드리지 않고 version만 증가"""
        account = await make_account(mock_store, "100")
        
        closed = await mock_store.update_account(
            account.account_id,
            USER,
            AccountUpdate.from_dict({"is_active": False, "notes": "moved bank"}),
        )
        
        assert closed.is_active is False
        assert closed.notes == "moved bank"
        assert closed.balance == Decimal("100")
        assert closed.version == 2
        assert await mock_store.get_account(account.account_id, USER) == closed
    
    @pytest.mark.asyncio
    async def test_update_rejects_balance(self, mock_store: MockLedgerStore, make_account) -> None:
        account = await make_account(mock_store, "100")
        
        with pytest.raises(ValidationError, match="balance"):
            await mock_store.update_account(
                account.account_id, USER, AccountUpdate.from_dict({"balance": "0"})
            )
        
        with pytest.raises(AccountNotFound):
            await mock_store.update_account("acc-missing", USER, AccountUpdate())
