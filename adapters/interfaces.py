"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 Ledger 저장소 구현체는 이 Protocol을 준수해야 함.
"""

from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from core.ledger.models import (
    Account,
    AccountDraft,
    AccountUpdate,
    Category,
    Payee,
    Transaction,
)


@runtime_checkable
class ILedgerStore(Protocol):
    """Ledger 저장소 인터페이스
    
    Balance Engine이 사용하는 저장 원시 연산.
    금액은 반드시 Decimal 타입 사용.
    모든 조회는 user_id 범위로 제한 (다른 사용자 레코드는 None).
    
    is_atomic:
        True  - transactional_scope() 안의 모든 쓰기가 all-or-nothing
        False - 스코프가 원자성을 보장하지 않음 (Engine이 보상 롤백 수행)
    """
    
    is_atomic: bool
    
    def transactional_scope(self) -> AbstractAsyncContextManager[Any]:
        """다중 쓰기를 묶는 스코프"""
        ...
    
    def read_scope(self) -> AbstractAsyncContextManager[Any]:
        """여러 조회를 같은 스냅샷에서 읽는 스코프"""
        ...
    
    # -------------------------------------------------------------------------
    # 계좌
    # -------------------------------------------------------------------------
    
    async def get_account(self, account_id: str, user_id: str) -> Account | None:
        """계좌 조회 (소유자가 아니면 None)"""
        ...
    
    async def list_accounts(self, user_id: str) -> list[Account]:
        """사용자의 전체 계좌 목록"""
        ...
    
    async def create_account(self, user_id: str, draft: AccountDraft) -> Account:
        """계좌 생성 (balance = opening_balance)"""
        ...
    
    async def update_account(
        self,
        account_id: str,
        user_id: str,
        update: AccountUpdate,
    ) -> Account:
        """계좌 정보 수정 (잔액은 변경하지 않음)
        
        Raises:
            AccountNotFound: 계좌 없음
        """
        ...
    
    async def increment_account_balance(
        self,
        account_id: str,
        user_id: str,
        delta: Decimal,
    ) -> Decimal:
        """잔액 원자적 증감
        
        조회 후 덮어쓰기가 아닌 버전 조건부 업데이트로 구현해야 함.
        
        Returns:
            변경 후 잔액
            
        Raises:
            AccountNotFound: 계좌 없음
            ConflictError: 재시도 한도 초과
        """
        ...
    
    # -------------------------------------------------------------------------
    # 거래
    # -------------------------------------------------------------------------
    
    async def get_transaction(
        self,
        transaction_id: str,
        user_id: str,
    ) -> Transaction | None:
        """거래 조회 (소유자가 아니면 None)"""
        ...
    
    async def save_transaction(
        self,
        tx: Transaction,
        expected_version: int | None = None,
    ) -> Transaction:
        """거래 저장
        
        expected_version이 None이면 insert 또는 덮어쓰기,
        지정되면 저장된 버전이 일치할 때만 갱신.
        
        Raises:
            ConflictError: 버전 불일치
            TransactionNotFound: expected_version 지정 시 레코드 없음
        """
        ...
    
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
        ...
    
    async def list_transactions_for_account(
        self,
        account_id: str,
        user_id: str,
    ) -> list[Transaction]:
        """계좌를 출발 또는 도착으로 참조하는 모든 거래"""
        ...
    
    # -------------------------------------------------------------------------
    # 카테고리 / 수취인
    # -------------------------------------------------------------------------
    
    async def get_category(self, category_id: str, user_id: str) -> Category | None:
        ...
    
    async def get_payee(self, payee_id: str, user_id: str) -> Payee | None:
        ...
