"""
Mock Ledger 저장소

테스트용 인메모리 ILedgerStore 구현.

다중 레코드 원자성을 보장하지 않음 (is_atomic=False).
Balance Engine의 lease + 보상 롤백 경로를 검증하는 데 사용.
잔액 증감은 실제 원격 저장소처럼 조회와 기록 사이에 제어권을 양보하고,
version 조건으로 기록하여 유실 갱신을 막는다.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from dataclasses import replace
from decimal import Decimal
from typing import AsyncIterator

from core.constants import Defaults, IdPrefix
from core.domain.errors import (
    AccountNotFound,
    ConflictError,
    TransactionNotFound,
)
from core.ledger.models import (
    Account,
    AccountDraft,
    AccountUpdate,
    Category,
    Payee,
    Transaction,
    utc_now,
)


class InjectedFailure(ConnectionError):
    """fail_next()로 주입된 저장소 실패"""
    pass


class MockLedgerStore:
    """Mock Ledger 저장소
    
    ILedgerStore Protocol 구현.
    
    사용 예시:
    ```python
    store = MockLedgerStore()
    account = await store.create_account("user-1", AccountDraft(...))
    
    # 두 번째 잔액 증감 호출부터 1회 실패
    store.fail_next("increment_account_balance", skip=1)
    ```
    """
    
    is_atomic = False
    
    def __init__(
        self,
        cas_max_retries: int = Defaults.CAS_MAX_RETRIES,
        latency: float = 0.0,
    ):
        self.cas_max_retries = cas_max_retries
        self.latency = latency  # 잔액 증감 1회당 지연 (초)
        self.accounts: dict[str, Account] = {}
        self.transactions: dict[str, Transaction] = {}
        self.categories: dict[str, Category] = {}
        self.payees: dict[str, Payee] = {}
        self.calls: list[str] = []
        self.cas_retries = 0
        self._failures: dict[str, list[int]] = {}
    
    # -------------------------------------------------------------------------
    # 실패 주입
    # -------------------------------------------------------------------------
    
    def fail_next(self, operation: str, times: int = 1, skip: int = 0) -> None:
        """연산 실패 예약
        
        Args:
            operation: 메서드 이름 (예: "save_transaction")
            times: 연속 실패 횟수
            skip: 실패 전에 정상 처리할 호출 수
        """
        self._failures[operation] = [skip, times]
    
    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        plan = self._failures.get(operation)
        if plan is None:
            return
        if plan[0] > 0:
            plan[0] -= 1
            return
        plan[1] -= 1
        if plan[1] <= 0:
            del self._failures[operation]
        raise InjectedFailure(f"injected failure: {operation}")
    
    @asynccontextmanager
    async def transactional_scope(self) -> AsyncIterator[None]:
        """원자성 없는 스코프 (구조 호환용)"""
        yield
    
    @asynccontextmanager
    async def read_scope(self) -> AsyncIterator[None]:
        """조회 스코프 (단일 스레드 dict이므로 별도 스냅샷 없음)"""
        yield
    
    # -------------------------------------------------------------------------
    # 계좌
    # -------------------------------------------------------------------------
    
    async def get_account(self, account_id: str, user_id: str) -> Account | None:
        account = self.accounts.get(account_id)
        if account is None or account.user_id != user_id:
            return None
        return account
    
    async def list_accounts(self, user_id: str) -> list[Account]:
        return [a for a in self.accounts.values() if a.user_id == user_id]
    
    async def create_account(self, user_id: str, draft: AccountDraft) -> Account:
        now = utc_now()
        account = Account(
            account_id=f"{IdPrefix.ACCOUNT}-{uuid.uuid4().hex[:16]}",
            user_id=user_id,
            name=draft.name,
            account_type=draft.account_type,
            balance=draft.opening_balance,
            opening_balance=draft.opening_balance,
            currency=draft.currency,
            is_active=draft.is_active,
            credit_limit=draft.credit_limit,
            description=draft.description,
            notes=draft.notes,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.accounts[account.account_id] = account
        return account
    
    async def update_account(
        self,
        account_id: str,
        user_id: str,
        update: AccountUpdate,
    ) -> Account:
        current = await self.get_account(account_id, user_id)
        if current is None:
            raise AccountNotFound(account_id)
        if not update.changes:
            return current
        
        account = update.apply_to(current, utc_now())
        self.accounts[account_id] = account
        return account
    
    async def increment_account_balance(
        self,
        account_id: str,
        user_id: str,
        delta: Decimal,
    ) -> Decimal:
        """버전 조건부 잔액 증감 (조회와 기록 사이 양보)"""
        self._record("increment_account_balance")
        
        for _ in range(self.cas_max_retries):
            seen = await self.get_account(account_id, user_id)
            if seen is None:
                raise AccountNotFound(account_id)
            
            # 원격 저장소 왕복 지연 흉내
            await asyncio.sleep(self.latency)
            
            current = self.accounts[account_id]
            if current.version != seen.version:
                self.cas_retries += 1
                continue
            
            self.accounts[account_id] = replace(
                current,
                balance=seen.balance + delta,
                version=seen.version + 1,
                updated_at=utc_now(),
            )
            return seen.balance + delta
        
        raise ConflictError(
            f"Balance update for {account_id} lost {self.cas_max_retries} races"
        )
    
    # -------------------------------------------------------------------------
    # 거래
    # -------------------------------------------------------------------------
    
    async def get_transaction(
        self,
        transaction_id: str,
        user_id: str,
    ) -> Transaction | None:
        tx = self.transactions.get(transaction_id)
        if tx is None or tx.user_id != user_id:
            return None
        return tx
    
    async def save_transaction(
        self,
        tx: Transaction,
        expected_version: int | None = None,
    ) -> Transaction:
        self._record("save_transaction")
        
        if expected_version is not None:
            current = await self.get_transaction(tx.transaction_id, tx.user_id)
            if current is None:
                raise TransactionNotFound(tx.transaction_id)
            if current.version != expected_version:
                raise ConflictError(
                    f"Version conflict on {tx.transaction_id}: "
                    f"expected {expected_version}, got {current.version}"
                )
        
        self.transactions[tx.transaction_id] = tx
        return tx
    
    async def delete_transaction(
        self,
        transaction_id: str,
        user_id: str,
        expected_version: int | None = None,
    ) -> None:
        self._record("delete_transaction")
        
        current = await self.get_transaction(transaction_id, user_id)
        if current is None:
            raise TransactionNotFound(transaction_id)
        if expected_version is not None and current.version != expected_version:
            raise ConflictError(
                f"Version conflict on {transaction_id}: "
                f"expected {expected_version}, got {current.version}"
            )
        del self.transactions[transaction_id]
    
    async def list_transactions_for_account(
        self,
        account_id: str,
        user_id: str,
    ) -> list[Transaction]:
        return sorted(
            (
                tx for tx in self.transactions.values()
                if tx.user_id == user_id and account_id in tx.account_ids
            ),
            key=lambda tx: (tx.date, tx.transaction_id),
        )
    
    # -------------------------------------------------------------------------
    # 카테고리 / 수취인
    # -------------------------------------------------------------------------
    
    async def create_category(self, user_id: str, name: str) -> Category:
        category = Category(f"{IdPrefix.CATEGORY}-{uuid.uuid4().hex[:16]}", user_id, name)
        self.categories[category.category_id] = category
        return category
    
    async def get_category(self, category_id: str, user_id: str) -> Category | None:
        category = self.categories.get(category_id)
        return category if category and category.user_id == user_id else None
    
    async def create_payee(self, user_id: str, name: str) -> Payee:
        payee = Payee(f"{IdPrefix.PAYEE}-{uuid.uuid4().hex[:16]}", user_id, name)
        self.payees[payee.payee_id] = payee
        return payee
    
    async def get_payee(self, payee_id: str, user_id: str) -> Payee | None:
        payee = self.payees.get(payee_id)
        return payee if payee and payee.user_id == user_id else None
