"""
core/ledger/validator.py 테스트
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from adapters.mock.ledger_store import MockLedgerStore
from core.domain.errors import (
    AccountNotFound,
    CategoryNotFound,
    InactiveAccount,
    InvalidAmount,
    InvalidTransfer,
    PayeeNotFound,
    ValidationError,
)
from core.ledger.models import Transaction, TransactionDraft
from core.ledger.validator import Validator, check_draft
from core.types import TransactionType


def _draft(**overrides) -> TransactionDraft:
    values = {
        "transaction_type": TransactionType.DEPOSIT,
        "amount": Decimal("10"),
        "account_id": "acc-a",
    }
    values.update(overrides)
    return TransactionDraft(**values)


def _tx(**overrides) -> Transaction:
    values = {
        "transaction_id": "tx-1",
        "user_id": "user-1",
        "transaction_type": TransactionType.DEPOSIT,
        "amount": Decimal("10"),
        "account_id": "acc-a",
        "date": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return Transaction(**values)


class TestCheckDraft:
    """형식 검증 테스트"""
    
    @pytest.mark.parametrize("amount", ["0", "-1", "NaN", "Infinity"])
    def test_invalid_amount(self, amount: str) -> None:
        with pytest.raises(InvalidAmount):
            check_draft(_draft(amount=Decimal(amount)))
    
    def test_transfer_requires_destination(self) -> None:
        with pytest.raises(InvalidTransfer, match="required"):
            check_draft(_draft(transaction_type=TransactionType.TRANSFER))
    
    def test_transfer_to_same_account(self) -> None:
        with pytest.raises(InvalidTransfer, match="same account"):
            check_draft(
                _draft(transaction_type=TransactionType.TRANSFER, to_account_id="acc-a")
            )
    
    def test_destination_only_for_transfer(self) -> None:
        """입금/출금에 to_account_id가 있으면 보정하지 않고 거부"""
        with pytest.raises(InvalidTransfer):
            check_draft(
                _draft(transaction_type=TransactionType.WITHDRAWAL, to_account_id="acc-b")
            )

    @pytest.mark.parametrize(
        "transaction_type",
        [TransactionType.DEPOSIT, TransactionType.WITHDRAWAL, TransactionType.TRANSFER],
    )
    def test_empty_destination(self, transaction_type: TransactionType) -> None:
        """빈 문자열 도착 계좌는 유형과 관계없이 InvalidTransfer"""
        with pytest.raises(InvalidTransfer):
            check_draft(_draft(transaction_type=transaction_type, to_account_id=""))

    @pytest.mark.parametrize("field", ["account_id", "category_id", "payee_id"])
    @pytest.mark.parametrize("value", ["", "  "])
    def test_blank_reference_ids(self, field: str, value: str) -> None:
        with pytest.raises(ValidationError, match="blank"):
            check_draft(_draft(**{field: value}))

    def test_notes_length(self) -> None:
        check_draft(_draft(notes="x" * 500))
        
        with pytest.raises(ValidationError, match="500"):
            check_draft(_draft(notes="x" * 501))
    
    def test_valid_transfer(self) -> None:
        check_draft(_draft(transaction_type=TransactionType.TRANSFER, to_account_id="acc-b"))


class TestCheckReferences:
    """참조 검증 테스트"""
    
    @pytest.mark.asyncio
    async def test_missing_account(self, mock_store: MockLedgerStore) -> None:
        validator = Validator(mock_store)
        
        with pytest.raises(AccountNotFound):
            await validator.check_references("user-1", _tx(account_id="acc-missing"))
    
    @pytest.mark.asyncio
    async def test_other_users_account(self, mock_store: MockLedgerStore, make_account) -> None:
        """다른 사용자 계좌는 존재하지 않는 것과 동일"""
        other = await make_account(mock_store, "100", user_id="user-2")
        validator = Validator(mock_store)
        
        with pytest.raises(AccountNotFound):
            await validator.check_references("user-1", _tx(account_id=other.account_id))
    
    @pytest.mark.asyncio
    async def test_currency_mismatch(self, mock_store: MockLedgerStore, make_account) -> None:
        usd = await make_account(mock_store, "100", currency="USD")
        krw = await make_account(mock_store, "100", currency="KRW")
        validator = Validator(mock_store)
        
        with pytest.raises(InvalidTransfer, match="currencies"):
            await validator.check_references(
                "user-1",
                _tx(
                    transaction_type=TransactionType.TRANSFER,
                    account_id=usd.account_id,
                    to_account_id=krw.account_id,
                ),
            )
    
    @pytest.mark.asyncio
    async def test_category_and_payee(self, mock_store: MockLedgerStore, make_account) -> None:
        account = await make_account(mock_store)
        category = await mock_store.create_category("user-1", "Food")
        payee = await mock_store.create_payee("user-1", "Market")
        validator = Validator(mock_store)
        
        accounts = await validator.check_references(
            "user-1",
            _tx(
                account_id=account.account_id,
                category_id=category.category_id,
                payee_id=payee.payee_id,
            ),
        )
        assert [a.account_id for a in accounts] == [account.account_id]
        
        with pytest.raises(CategoryNotFound):
            await validator.check_references(
                "user-1", _tx(account_id=account.account_id, category_id="cat-x")
            )
        
        with pytest.raises(PayeeNotFound):
            await validator.check_references(
                "user-1", _tx(account_id=account.account_id, payee_id="pay-x")
            )
    
    @pytest.mark.asyncio
    async def test_inactive_account_policy(
        self, mock_store: MockLedgerStore, make_account
    ) -> None:
        """해지 계좌는 설정에 따라 허용/거부"""
        closed = await make_account(mock_store, "10", is_active=False)
        tx = _tx(account_id=closed.account_id)
        
        await Validator(mock_store, allow_inactive_accounts=True).check_references("user-1", tx)
        
        with pytest.raises(InactiveAccount):
            await Validator(mock_store, allow_inactive_accounts=False).check_references(
                "user-1", tx
            )
