"""
거래 사전 검증

- check_draft(): 저장소 없이 판단 가능한 형식 검증 (금액, 이체 형태, 메모 길이)
- check_references(): 참조 레코드 존재/소유권, 이체 통화 일치, 해지 계좌 정책

검증 실패는 타입이 있는 예외로 보고하며 값을 보정하지 않는다.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from core.constants import Defaults, Limits
from core.domain.errors import (
    AccountNotFound,
    CategoryNotFound,
    InactiveAccount,
    InvalidAmount,
    InvalidTransfer,
    PayeeNotFound,
    ValidationError,
)
from core.ledger.effect import EffectSource
from core.ledger.models import Account, Transaction
from core.types import TransactionType

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerStore

logger = logging.getLogger(__name__)


def check_amount(amount: Decimal) -> None:
    """금액이 유한한 양수인지 확인

    Raises:
        InvalidAmount: NaN/무한대 또는 0 이하
    """
    if not isinstance(amount, Decimal) or not amount.is_finite():
        raise InvalidAmount(amount)
    if amount <= Limits.MIN_AMOUNT_EXCLUSIVE:
        raise InvalidAmount(amount)


def check_draft(tx: EffectSource) -> None:
    """형식 검증 (순수 함수)

    Args:
        tx: Transaction 또는 TransactionDraft

    Raises:
        InvalidAmount: 금액 오류
        InvalidTransfer: 이체 계좌 조합 오류
        ValidationError: 메모 길이 초과, 빈 ID
    """
    check_amount(tx.amount)

    if tx.transaction_type == TransactionType.TRANSFER:
        if not tx.to_account_id:
            raise InvalidTransfer("To account is required for transfer transactions")
        if tx.to_account_id == tx.account_id:
            raise InvalidTransfer("Cannot transfer to the same account")
    elif tx.to_account_id is not None:
        raise InvalidTransfer(
            f"To account is only allowed for transfers "
            f"(got {tx.transaction_type.value})"
        )

    # 빈 문자열 ID는 "없음"이 아니라 잘못된 입력
    for label, value in (
        ("Account", tx.account_id),
        ("Category", getattr(tx, "category_id", None)),
        ("Payee", getattr(tx, "payee_id", None)),
    ):
        if value is not None and not str(value).strip():
            raise ValidationError(f"{label} id cannot be blank")

    notes = getattr(tx, "notes", None)
    if notes is not None and len(notes) > Limits.NOTES_MAX_LENGTH:
        raise ValidationError(
            f"Notes cannot exceed {Limits.NOTES_MAX_LENGTH} characters"
        )


class Validator:
    """참조 검증기

    Args:
        store: Ledger 저장소
        allow_inactive_accounts: False면 해지 계좌 사용 시 InactiveAccount
    """

    def __init__(
        self,
        store: ILedgerStore,
        allow_inactive_accounts: bool = Defaults.ALLOW_INACTIVE_ACCOUNTS,
    ):
        self.store = store
        self.allow_inactive_accounts = allow_inactive_accounts

    async def _load_account(self, account_id: str, user_id: str) -> Account:
        account = await self.store.get_account(account_id, user_id)
        if account is None:
            raise AccountNotFound(account_id)
        if not account.is_active and not self.allow_inactive_accounts:
            raise InactiveAccount(account_id)
        return account

    async def check_references(self, user_id: str, tx: Transaction) -> list[Account]:
        """참조 레코드 검증

        Returns:
            잔액 영향 계좌 목록 (출발, 도착 순)

        Raises:
            AccountNotFound / CategoryNotFound / PayeeNotFound
            InactiveAccount: 해지 계좌 (정책상 금지일 때)
            InvalidTransfer: 통화가 다른 계좌 간 이체
        """
        accounts = [await self._load_account(tx.account_id, user_id)]

        if tx.to_account_id is not None:
            destination = await self._load_account(tx.to_account_id, user_id)
            if destination.currency != accounts[0].currency:
                raise InvalidTransfer(
                    f"Cannot transfer between currencies "
                    f"({accounts[0].currency} -> {destination.currency})"
                )
            accounts.append(destination)

        if tx.category_id is not None and await self.store.get_category(tx.category_id, user_id) is None:
            raise CategoryNotFound(tx.category_id)

        if tx.payee_id is not None and await self.store.get_payee(tx.payee_id, user_id) is None:
            raise PayeeNotFound(tx.payee_id)

        return accounts
