"""
Ledger 저장소

계좌/거래/카테고리/수취인 레코드 저장 및 조회 (SQLite).

잔액 변경은 increment_account_balance() 하나로만 수행하며,
version 컬럼 조건부 UPDATE(CAS)로 구현하여 조회 후 덮어쓰기 경합을 막는다.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, AsyncIterator

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

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


_TRANSACTION_COLUMNS = """
    transaction_id, user_id, transaction_type, amount,
    account_id, to_account_id, status, date,
    category_id, payee_id, notes, version, created_at, updated_at
"""

_ACCOUNT_COLUMNS = """
    account_id, user_id, name, account_type, balance, opening_balance,
    currency, credit_limit, description, notes, is_active, version,
    created_at, updated_at
"""


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


class LedgerStore:
    """Ledger 저장소 (SQLite)
    
    transactional_scope()는 BEGIN IMMEDIATE 트랜잭션이므로 원자적(is_atomic=True).
    스코프 밖에서 호출된 쓰기 연산은 각자 단일 트랜잭션으로 실행.
    
    Args:
        db: SQLite 어댑터
        cas_max_retries: 잔액 조건부 업데이트 재시도 횟수
    """
    
    is_atomic = True
    
    def __init__(
        self,
        db: SQLiteAdapter,
        cas_max_retries: int = Defaults.CAS_MAX_RETRIES,
    ):
        self.db = db
        self.cas_max_retries = cas_max_retries
    
    @asynccontextmanager
    async def transactional_scope(self) -> AsyncIterator[None]:
        """all-or-nothing 쓰기 스코프"""
        async with self.db.transaction():
            yield
    
    @asynccontextmanager
    async def read_scope(self) -> AsyncIterator[None]:
        """여러 조회를 하나의 스냅샷에서 수행"""
        if self.db.in_transaction:
            yield
        else:
            async with self.db.read_transaction():
                yield
    
    @asynccontextmanager
    async def _write(self) -> AsyncIterator[None]:
        """스코프 안이면 그대로, 밖이면 단독 트랜잭션으로 실행"""
        if self.db.in_transaction:
            yield
        else:
            async with self.db.transaction():
                yield
    
    # =========================================================================
    # 계좌
    # =========================================================================
    
    async def get_account(self, account_id: str, user_id: str) -> Account | None:
        """계좌 조회
        
        Args:
            account_id: 계좌 ID
            user_id: 요청 사용자
            
        Returns:
            Account (없거나 다른 사용자 소유면 None)
        """
        row = await self.db.fetchone_dict(
            f"""
            SELECT {_ACCOUNT_COLUMNS}
            FROM account
            WHERE account_id = ? AND user_id = ?
            """,
            (account_id, user_id),
        )
        return Account.from_row(row) if row else None
    
    async def list_accounts(self, user_id: str) -> list[Account]:
        """사용자의 전체 계좌 목록 (해지 계좌 포함)"""
        rows = await self.db.fetchall_dict(
            f"""
            SELECT {_ACCOUNT_COLUMNS}
            FROM account
            WHERE user_id = ?
            ORDER BY created_at, account_id
            """,
            (user_id,),
        )
        return [Account.from_row(row) for row in rows]
    
    async def create_account(self, user_id: str, draft: AccountDraft) -> Account:
        """계좌 생성
        
        balance는 opening_balance로 시작. 이후 변경은 Balance Engine만 수행.
        
        Returns:
            생성된 Account
        """
        account_id = f"{IdPrefix.ACCOUNT}-{uuid.uuid4().hex[:16]}"
        now = utc_now().isoformat()
        
        async with self._write():
            await self.db.execute(
                """
                INSERT INTO account (
                    account_id, user_id, name, account_type,
                    balance, opening_balance, currency, credit_limit,
                    description, notes, is_active, version,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
                """,
                (
                    account_id,
                    user_id,
                    draft.name,
                    draft.account_type.value,
                    str(draft.opening_balance),
                    str(draft.opening_balance),
                    draft.currency,
                    str(draft.credit_limit) if draft.credit_limit is not None else None,
                    draft.description,
                    draft.notes,
                    1 if draft.is_active else 0,
                    now,
                    now,
                ),
            )
        
        logger.info(
            f"Account created: {account_id}",
            extra={"user_id": user_id, "currency": draft.currency},
        )
        
        account = await self.get_account(account_id, user_id)
        assert account is not None
        return account
    
    async def update_account(
        self,
        account_id: str,
        user_id: str,
        update: AccountUpdate,
    ) -> Account:
        """계좌 정보 수정 (이름/설명/메모/한도/활성 여부)
        
        balance 컬럼은 건드리지 않으며 version만 증가시킨다.
        
        Raises:
            AccountNotFound: 계좌 없음
        """
        if not update.changes:
            account = await self.get_account(account_id, user_id)
            if account is None:
                raise AccountNotFound(account_id)
            return account
        
        columns = sorted(update.changes)
        values: list[Any] = []
        for column in columns:
            value = update.changes[column]
            if column == "is_active":
                value = 1 if value else 0
            elif column == "credit_limit" and value is not None:
                value = str(value)
            values.append(value)
        
        assignments = ", ".join(f"{column} = ?" for column in columns)
        async with self._write():
            cursor = await self.db.execute(
                f"""
                UPDATE account
                SET {assignments}, version = version + 1, updated_at = ?
                WHERE account_id = ? AND user_id = ?
                """,
                (*values, utc_now().isoformat(), account_id, user_id),
            )
            if cursor.rowcount != 1:
                raise AccountNotFound(account_id)
        
        logger.info(
            f"Account updated: {account_id}",
            extra={"user_id": user_id, "fields": columns},
        )
        
        account = await self.get_account(account_id, user_id)
        assert account is not None
        return account
    
    async def increment_account_balance(
        self,
        account_id: str,
        user_id: str,
        delta: Decimal,
    ) -> Decimal:
        """잔액 원자적 증감 (버전 조건부 UPDATE + 재시도)
        
        SQL 산술(balance + ?)은 TEXT를 REAL로 바꿔 정밀도를 잃으므로
        Decimal로 계산하고 version이 그대로일 때만 기록한다.
        
        Args:
            account_id: 계좌 ID
            user_id: 소유자
            delta: 증감량 (부호 포함)
            
        Returns:
            변경 후 잔액
            
        Raises:
            AccountNotFound: 계좌 없음
            ConflictError: 재시도 한도 초과
        """
        async with self._write():
            for attempt in range(1, self.cas_max_retries + 1):
                row = await self.db.fetchone(
                    """
                    SELECT balance, version FROM account
                    WHERE account_id = ? AND user_id = ?
                    """,
                    (account_id, user_id),
                )
                if row is None:
                    raise AccountNotFound(account_id)
                
                new_balance = Decimal(row[0]) + delta
                cursor = await self.db.execute(
                    """
                    UPDATE account
                    SET balance = ?, version = version + 1, updated_at = ?
                    WHERE account_id = ? AND user_id = ? AND version = ?
                    """,
                    (
                        str(new_balance),
                        utc_now().isoformat(),
                        account_id,
                        user_id,
                        row[1],
                    ),
                )
                if cursor.rowcount == 1:
                    return new_balance
                
                logger.warning(
                    f"Balance CAS retry: {account_id}",
                    extra={"attempt": attempt, "version": row[1]},
                )
        
        raise ConflictError(
            f"Balance update for {account_id} lost {self.cas_max_retries} races"
        )
    
    # =========================================================================
    # 거래
    # =========================================================================
    
    async def get_transaction(
        self,
        transaction_id: str,
        user_id: str,
    ) -> Transaction | None:
        """거래 조회 (다른 사용자 소유면 None)"""
        row = await self.db.fetchone_dict(
            f"""
            SELECT {_TRANSACTION_COLUMNS}
            FROM ledger_transaction
            WHERE transaction_id = ? AND user_id = ?
            """,
            (transaction_id, user_id),
        )
        return Transaction.from_row(row) if row else None
    
    async def save_transaction(
        self,
        tx: Transaction,
        expected_version: int | None = None,
    ) -> Transaction:
        """거래 저장
        
        expected_version이 None이면 UPSERT (생성 또는 보상 복원),
        지정되면 버전 조건부 UPDATE.
        
        Args:
            tx: 저장할 거래 (version 포함)
            expected_version: 현재 저장된 버전 기대값
            
        Returns:
            저장된 거래
            
        Raises:
            ConflictError: 버전 불일치
            TransactionNotFound: 조건부 갱신 대상 없음
        """
        params = self._transaction_params(tx)
        
        async with self._write():
            if expected_version is None:
                await self.db.execute(
                    f"""
                    INSERT INTO ledger_transaction ({_TRANSACTION_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(transaction_id) DO UPDATE SET
                        transaction_type = excluded.transaction_type,
                        amount = excluded.amount,
                        account_id = excluded.account_id,
                        to_account_id = excluded.to_account_id,
                        status = excluded.status,
                        date = excluded.date,
                        category_id = excluded.category_id,
                        payee_id = excluded.payee_id,
                        notes = excluded.notes,
                        version = excluded.version,
                        updated_at = excluded.updated_at
                    WHERE ledger_transaction.user_id = excluded.user_id
                    """,
                    params,
                )
            else:
                cursor = await self.db.execute(
                    """
                    UPDATE ledger_transaction
                    SET transaction_type = ?, amount = ?, account_id = ?,
                        to_account_id = ?, status = ?, date = ?,
                        category_id = ?, payee_id = ?, notes = ?,
                        version = ?, updated_at = ?
                    WHERE transaction_id = ? AND user_id = ? AND version = ?
                    """,
                    (
                        tx.transaction_type.value,
                        str(tx.amount),
                        tx.account_id,
                        tx.to_account_id,
                        tx.status.value,
                        tx.date.isoformat(),
                        tx.category_id,
                        tx.payee_id,
                        tx.notes,
                        tx.version,
                        _iso(tx.updated_at),
                        tx.transaction_id,
                        tx.user_id,
                        expected_version,
                    ),
                )
                if cursor.rowcount == 0:
                    await self._raise_missing_or_conflict(
                        tx.transaction_id, tx.user_id, expected_version
                    )
        
        logger.debug(f"Saved transaction: {tx.transaction_id} (v{tx.version})")
        return tx
    
    async def delete_transaction(
        self,
        transaction_id: str,
        user_id: str,
        expected_version: int | None = None,
    ) -> None:
        """거래 삭제
        
        Raises:
            TransactionNotFound: 레코드 없음
            ConflictError: 버전 불일치
        """
        async with self._write():
            if expected_version is None:
                cursor = await self.db.execute(
                    """
                    DELETE FROM ledger_transaction
                    WHERE transaction_id = ? AND user_id = ?
                    """,
                    (transaction_id, user_id),
                )
            else:
                cursor = await self.db.execute(
                    """
                    DELETE FROM ledger_transaction
                    WHERE transaction_id = ? AND user_id = ? AND version = ?
                    """,
                    (transaction_id, user_id, expected_version),
                )
            
            if cursor.rowcount == 0:
                await self._raise_missing_or_conflict(
                    transaction_id, user_id, expected_version
                )
        
        logger.debug(f"Deleted transaction: {transaction_id}")
    
    async def list_transactions_for_account(
        self,
        account_id: str,
        user_id: str,
    ) -> list[Transaction]:
        """계좌를 출발 또는 도착으로 참조하는 모든 거래 (날짜순)"""
        rows = await self.db.fetchall_dict(
            f"""
            SELECT {_TRANSACTION_COLUMNS}
            FROM ledger_transaction
            WHERE user_id = ? AND (account_id = ? OR to_account_id = ?)
            ORDER BY date, transaction_id
            """,
            (user_id, account_id, account_id),
        )
        return [Transaction.from_row(row) for row in rows]
    
    async def _raise_missing_or_conflict(
        self,
        transaction_id: str,
        user_id: str,
        expected_version: int | None,
    ) -> None:
        """영향받은 행이 0일 때 원인 구분"""
        row = await self.db.fetchone(
            """
            SELECT version FROM ledger_transaction
            WHERE transaction_id = ? AND user_id = ?
            """,
            (transaction_id, user_id),
        )
        if row is None:
            raise TransactionNotFound(transaction_id)
        raise ConflictError(
            f"Version conflict on {transaction_id}: "
            f"expected {expected_version}, got {row[0]}"
        )
    
    @staticmethod
    def _transaction_params(tx: Transaction) -> tuple[Any, ...]:
        return (
            tx.transaction_id,
            tx.user_id,
            tx.transaction_type.value,
            str(tx.amount),
            tx.account_id,
            tx.to_account_id,
            tx.status.value,
            tx.date.isoformat(),
            tx.category_id,
            tx.payee_id,
            tx.notes,
            tx.version,
            _iso(tx.created_at) or utc_now().isoformat(),
            _iso(tx.updated_at) or utc_now().isoformat(),
        )
    
    # =========================================================================
    # 카테고리 / 수취인
    # =========================================================================
    
    async def create_category(self, user_id: str, name: str) -> Category:
        """카테고리 생성"""
        category_id = f"{IdPrefix.CATEGORY}-{uuid.uuid4().hex[:16]}"
        async with self._write():
            await self.db.execute(
                "INSERT INTO category (category_id, user_id, name) VALUES (?, ?, ?)",
                (category_id, user_id, name),
            )
        return Category(category_id=category_id, user_id=user_id, name=name)
    
    async def get_category(self, category_id: str, user_id: str) -> Category | None:
        row = await self.db.fetchone(
            "SELECT category_id, user_id, name FROM category WHERE category_id = ? AND user_id = ?",
            (category_id, user_id),
        )
        return Category(*row) if row else None
    
    async def create_payee(self, user_id: str, name: str) -> Payee:
        """수취인 생성"""
        payee_id = f"{IdPrefix.PAYEE}-{uuid.uuid4().hex[:16]}"
        async with self._write():
            await self.db.execute(
                "INSERT INTO payee (payee_id, user_id, name) VALUES (?, ?, ?)",
                (payee_id, user_id, name),
            )
        return Payee(payee_id=payee_id, user_id=user_id, name=name)
    
    async def get_payee(self, payee_id: str, user_id: str) -> Payee | None:
        row = await self.db.fetchone(
            "SELECT payee_id, user_id, name FROM payee WHERE payee_id = ? AND user_id = ?",
            (payee_id, user_id),
        )
        return Payee(*row) if row else None
    
    # =========================================================================
    # 대시보드
    # =========================================================================
    
    async def get_summary(self, user_id: str) -> dict[str, Any]:
        """대시보드 요약
        
        활성 계좌의 통화별 잔액 합계, 계좌별 거래 건수.
        합계는 Decimal로 계산 (SQL SUM은 REAL 변환).
        
        Returns:
            totals_by_currency, accounts, account_count, transaction_count
        """
        rows = await self.db.fetchall(
            """
            SELECT a.account_id, a.name, a.account_type, a.balance,
                   a.currency, a.is_active, v.tx_count
            FROM account a
            JOIN v_account_activity v ON v.account_id = a.account_id
            WHERE a.user_id = ?
            ORDER BY a.created_at, a.account_id
            """,
            (user_id,),
        )
        
        totals: dict[str, Decimal] = {}
        accounts = []
        for row in rows:
            balance = Decimal(row[3])
            is_active = bool(row[5])
            if is_active:
                totals[row[4]] = totals.get(row[4], Decimal("0")) + balance
            accounts.append({
                "account_id": row[0],
                "name": row[1],
                "account_type": row[2],
                "balance": str(balance),
                "currency": row[4],
                "is_active": is_active,
                "transaction_count": row[6],
            })
        
        count_row = await self.db.fetchone(
            "SELECT COUNT(*) FROM ledger_transaction WHERE user_id = ?",
            (user_id,),
        )
        
        return {
            "totals_by_currency": {k: str(v) for k, v in sorted(totals.items())},
            "accounts": accounts,
            "account_count": len(accounts),
            "transaction_count": count_row[0] if count_row else 0,
        }
