"""
Balance Engine

거래 생성/수정/삭제 시 계좌 잔액을 함께 갱신하는 유일한 경로.

처리 순서:
1. (수정/삭제) 거래 ID 락 획득 후 기존 레코드 조회
2. 영향 계좌 lease를 ID 오름차순으로 획득
3. 저장소 transactional_scope 안에서 검증 → 역분개 → 적용 → 레코드 저장
4. 실패 시 원자적 저장소는 롤백, 비원자적 저장소는 undo 저널을 역순 실행

잔액 효과 계산은 core.ledger.effect만 사용한다.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from functools import partial
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, TypeVar

from core.constants import Defaults, IdPrefix
from core.domain.errors import (
    AccountNotFound,
    CompensationError,
    ConflictError,
    LedgerError,
    StorageError,
    TransactionNotFound,
)
from core.ledger.effect import BalanceDelta, compute_effect, effect_on_account, reverse_effect
from core.ledger.models import Transaction, TransactionDraft, TransactionPatch, utc_now
from core.ledger.validator import Validator, check_draft
from core.utils.locks import KeyedLock

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

UndoStep = Callable[[], Awaitable[Any]]

# 프로세스 전역 lease 레지스트리 (엔진 인스턴스 간 공유)
_default_leases = KeyedLock()


def transaction_key(transaction_id: str) -> str:
    return f"tx:{transaction_id}"


def account_key(account_id: str) -> str:
    return f"account:{account_id}"


@dataclass(frozen=True)
class BalanceDrift:
    """잔액 정합 검증 결과
    
    expected_balance = opening_balance + Σ 거래 효과
    """
    
    account_id: str
    currency: str
    stored_balance: Decimal
    expected_balance: Decimal
    transaction_count: int
    
    @property
    def drift(self) -> Decimal:
        return self.stored_balance - self.expected_balance
    
    @property
    def has_drift(self) -> bool:
        return self.drift != 0
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "currency": self.currency,
            "stored_balance": str(self.stored_balance),
            "expected_balance": str(self.expected_balance),
            "drift": str(self.drift),
            "has_drift": self.has_drift,
            "transaction_count": self.transaction_count,
        }


class UndoJournal:
    """보상 단계 기록
    
    성공한 쓰기마다 되돌리는 단계를 추가하고,
    실패 시 unwind()로 역순 실행한다.
    """
    
    def __init__(self, operation: str):
        self.operation = operation
        self._steps: list[tuple[str, UndoStep]] = []
    
    def __len__(self) -> int:
        return len(self._steps)
    
    def record(self, label: str, step: UndoStep) -> None:
        self._steps.append((label, step))
    
    async def unwind(self) -> None:
        """기록된 단계를 역순으로 실행
        
        Raises:
            CompensationError: 보상 단계 실패 (남은 단계 수 포함)
        """
        while self._steps:
            label, step = self._steps[-1]
            try:
                await step()
            except Exception as e:
                pending = len(self._steps)
                logger.critical(
                    f"보상 롤백 실패, 수동 정합 확인 필요: {self.operation} ({label})",
                    extra={"operation": self.operation, "pending_steps": pending},
                    exc_info=True,
                )
                raise CompensationError(
                    f"Compensation failed during {self.operation} at '{label}': "
                    "manual reconciliation required",
                    operation=self.operation,
                    pending_steps=pending,
                ) from e
            self._steps.pop()
        
        logger.warning(f"보상 롤백 완료: {self.operation}")


class BalanceEngine:
    """Balance Engine
    
    Args:
        store: Ledger 저장소 (ILedgerStore)
        validator: 참조 검증기 (기본: 해지 계좌 허용)
        leases: lease 레지스트리 (기본: 프로세스 전역)
        scope_timeout_sec: 작업 단위 제한 시간
    
    사용 예시:
    ```python
    engine = BalanceEngine(LedgerStore(db))
    tx = await engine.apply_create("user-1", TransactionDraft(...))
    await engine.apply_delete("user-1", tx.transaction_id)
    ```
    """
    
    def __init__(
        self,
        store: ILedgerStore,
        validator: Validator | None = None,
        leases: KeyedLock | None = None,
        scope_timeout_sec: float = Defaults.SCOPE_TIMEOUT_SEC,
    ):
        self.store = store
        self.validator = validator or Validator(store)
        self.leases = leases if leases is not None else _default_leases
        self.scope_timeout_sec = scope_timeout_sec
    
    # =========================================================================
    # 생성
    # =========================================================================
    
    async def apply_create(self, user_id: str, draft: TransactionDraft) -> Transaction:
        """거래 생성 + 잔액 효과 적용
        
        Args:
            user_id: 요청 사용자
            draft: 거래 초안
            
        Returns:
            저장된 Transaction (version=1)
            
        Raises:
            InvalidAmount / InvalidTransfer / ValidationError
            AccountNotFound / CategoryNotFound / PayeeNotFound
            StorageError: 저장 실패 또는 타임아웃
        """
        check_draft(draft)
        
        tx = draft.to_transaction(
            transaction_id=f"{IdPrefix.TRANSACTION}-{uuid.uuid4().hex[:16]}",
            user_id=user_id,
            now=utc_now(),
        )
        
        async def work(journal: UndoJournal) -> Transaction:
            await self.validator.check_references(user_id, tx)
            await self._apply_deltas(journal, user_id, compute_effect(tx))
            
            saved = await self.store.save_transaction(tx)
            journal.record(
                "remove created transaction",
                partial(self.store.delete_transaction, tx.transaction_id, user_id),
            )
            return saved
        
        saved = await self._run("create", tx.account_ids, work)
        
        logger.info(
            f"Transaction created: {saved.transaction_id}",
            extra={
                "user_id": user_id,
                "transaction_type": saved.transaction_type.value,
                "amount": str(saved.amount),
            },
        )
        return saved
    
    # =========================================================================
    # 수정
    # =========================================================================
    
    async def apply_update(
        self,
        user_id: str,
        transaction_id: str,
        patch: TransactionPatch,
    ) -> Transaction:
        """거래 수정 (기존 효과 역분개 후 새 효과 적용)
        
        transfer에서 다른 유형으로 바꿀 때는 patch에 to_account_id=None을
        명시해야 한다.
        
        Args:
            user_id: 요청 사용자
            transaction_id: 거래 ID
            patch: 변경 사항 (expected_version 선택)
            
        Returns:
            저장된 Transaction (version +1)
            
        Raises:
            TransactionNotFound: 거래 없음
            ConflictError: expected_version 불일치 또는 동시 수정
            InvalidAmount / InvalidTransfer / AccountNotFound 등 검증 오류
            StorageError: 저장 실패 또는 타임아웃
        """
        async with self.leases.hold(transaction_key(transaction_id)):
            existing = await self._load_transaction(
                user_id, transaction_id, patch.expected_version
            )
            
            merged = replace(
                patch.apply_to(existing, utc_now()),
                version=existing.version + 1,
            )
            check_draft(merged)
            
            async def work(journal: UndoJournal) -> Transaction:
                await self._recheck_version(user_id, existing)
                await self.validator.check_references(user_id, merged)
                
                await self._apply_deltas(journal, user_id, reverse_effect(existing))
                await self._apply_deltas(journal, user_id, compute_effect(merged))
                
                saved = await self.store.save_transaction(
                    merged, expected_version=existing.version
                )
                journal.record(
                    "restore previous transaction",
                    partial(self.store.save_transaction, existing),
                )
                return saved
            
            saved = await self._run(
                "update",
                existing.account_ids + merged.account_ids,
                work,
            )
        
        logger.info(
            f"Transaction updated: {transaction_id} (v{saved.version})",
            extra={"user_id": user_id, "fields": sorted(patch.changes)},
        )
        return saved
    
    # =========================================================================
    # 삭제
    # =========================================================================
    
    async def apply_delete(
        self,
        user_id: str,
        transaction_id: str,
        expected_version: int | None = None,
    ) -> None:
        """거래 삭제 + 잔액 효과 역분개
        
        Raises:
            TransactionNotFound: 거래 없음
            ConflictError: 버전 불일치 또는 동시 수정
            StorageError: 저장 실패 또는 타임아웃
        """
        async with self.leases.hold(transaction_key(transaction_id)):
            existing = await self._load_transaction(
                user_id, transaction_id, expected_version
            )
            
            async def work(journal: UndoJournal) -> None:
                await self._recheck_version(user_id, existing)
                await self._apply_deltas(journal, user_id, reverse_effect(existing))
                
                await self.store.delete_transaction(
                    transaction_id, user_id, expected_version=existing.version
                )
                journal.record(
                    "restore deleted transaction",
                    partial(self.store.save_transaction, existing),
                )
            
            await self._run("delete", existing.account_ids, work)
        
        logger.info(
            f"Transaction deleted: {transaction_id}",
            extra={"user_id": user_id},
        )
    
    # =========================================================================
    # 정합 검증
    # =========================================================================
    
    async def reconcile_account(self, user_id: str, account_id: str) -> BalanceDrift:
        """저장된 잔액과 거래 내역으로 재계산한 잔액 비교 (읽기 전용)
        
        Raises:
            AccountNotFound: 계좌 없음
        """
        # 계좌 행과 거래 목록을 같은 스냅샷에서 읽는다
        async with self.leases.hold(account_key(account_id)):
            async with self.store.read_scope():
                account = await self.store.get_account(account_id, user_id)
                if account is None:
                    raise AccountNotFound(account_id)

                transactions = await self.store.list_transactions_for_account(
                    account_id, user_id
                )
        
        expected = account.opening_balance + sum(
            (effect_on_account(tx, account_id) for tx in transactions),
            Decimal("0"),
        )
        result = BalanceDrift(
            account_id=account_id,
            currency=account.currency,
            stored_balance=account.balance,
            expected_balance=expected,
            transaction_count=len(transactions),
        )
        
        if result.has_drift:
            logger.warning(
                f"Balance drift detected: {account_id}",
                extra={
                    "stored": str(result.stored_balance),
                    "expected": str(result.expected_balance),
                    "drift": str(result.drift),
                },
            )
        return result
    
    # =========================================================================
    # 내부
    # =========================================================================
    
    async def _load_transaction(
        self,
        user_id: str,
        transaction_id: str,
        expected_version: int | None,
    ) -> Transaction:
        existing = await self.store.get_transaction(transaction_id, user_id)
        if existing is None:
            raise TransactionNotFound(transaction_id)
        if expected_version is not None and existing.version != expected_version:
            raise ConflictError(
                f"Version conflict on {transaction_id}: "
                f"expected {expected_version}, got {existing.version}"
            )
        return existing
    
    async def _recheck_version(self, user_id: str, existing: Transaction) -> None:
        """스코프 안에서 재조회 (다른 프로세스의 변경 감지)"""
        current = await self.store.get_transaction(existing.transaction_id, user_id)
        if current is None:
            raise TransactionNotFound(existing.transaction_id)
        if current.version != existing.version:
            raise ConflictError(
                f"Transaction {existing.transaction_id} changed concurrently "
                f"(v{existing.version} -> v{current.version})"
            )
    
    async def _apply_deltas(
        self,
        journal: UndoJournal,
        user_id: str,
        deltas: list[BalanceDelta],
    ) -> None:
        for delta in deltas:
            await self.store.increment_account_balance(
                delta.account_id, user_id, delta.amount
            )
            journal.record(
                f"revert {delta.account_id} by {delta.amount}",
                partial(
                    self.store.increment_account_balance,
                    delta.account_id,
                    user_id,
                    -delta.amount,
                ),
            )
    
    async def _scoped(
        self,
        work: Callable[[UndoJournal], Awaitable[T]],
        journal: UndoJournal,
    ) -> T:
        async with self.store.transactional_scope():
            return await work(journal)
    
    async def _run(
        self,
        operation: str,
        account_ids: Iterable[str],
        work: Callable[[UndoJournal], Awaitable[T]],
    ) -> T:
        """계좌 lease + 트랜잭션 스코프 + 타임아웃 안에서 작업 실행
        
        실패 시 비원자적 저장소면 보상 롤백 후 예외 전파.
        LedgerError가 아닌 예외는 StorageError로 감싼다.
        """
        keys = [account_key(account_id) for account_id in account_ids]
        
        async with self.leases.hold(*keys):
            journal = UndoJournal(operation)
            try:
                return await asyncio.wait_for(
                    self._scoped(work, journal),
                    timeout=self.scope_timeout_sec,
                )
            except asyncio.TimeoutError as e:
                logger.error(
                    f"{operation} 제한 시간 초과 ({self.scope_timeout_sec}s)",
                    extra={"operation": operation},
                )
                await self._compensate(journal)
                raise StorageError(
                    f"{operation} timed out after {self.scope_timeout_sec}s"
                ) from e
            except asyncio.CancelledError:
                logger.warning(
                    f"{operation} 취소됨, 보상 롤백 실행",
                    extra={"operation": operation},
                )
                # 호출자가 다시 취소해도 보상은 끝까지 실행
                await asyncio.shield(self._compensate(journal))
                raise
            except LedgerError as e:
                logger.warning(
                    f"{operation} 실패: {e.message}",
                    extra={"operation": operation, "error": type(e).__name__},
                )
                await self._compensate(journal)
                raise
            except Exception as e:
                logger.error(
                    f"{operation} 저장소 오류: {e}",
                    extra={"operation": operation},
                    exc_info=True,
                )
                await self._compensate(journal)
                raise StorageError(f"{operation} failed: {e}") from e
    
    async def _compensate(self, journal: UndoJournal) -> None:
        if self.store.is_atomic or not journal:
            return
        await journal.unwind()
