"""
거래 서비스

Balance Engine을 통한 거래 생성/수정/삭제 및 조회.
"""

from typing import Any

from core.domain.errors import TransactionNotFound
from core.ledger.engine import BalanceEngine
from core.ledger.models import (
    CLEARABLE_FIELDS,
    PATCHABLE_FIELDS,
    Transaction,
    TransactionDraft,
    TransactionPatch,
)


class TransactionService:
    """거래 서비스
    
    잔액 변경은 모두 BalanceEngine에 위임.
    
    Args:
        engine: Balance Engine
    """
    
    def __init__(self, engine: BalanceEngine):
        self.engine = engine
        self.store = engine.store
    
    async def get_transaction(self, user_id: str, transaction_id: str) -> Transaction:
        """거래 조회
        
        Raises:
            TransactionNotFound: 없거나 다른 사용자 소유
        """
        tx = await self.store.get_transaction(transaction_id, user_id)
        if tx is None:
            raise TransactionNotFound(transaction_id)
        return tx
    
    async def create_transaction(self, user_id: str, payload: dict[str, Any]) -> Transaction:
        """거래 생성"""
        draft = TransactionDraft.from_dict(payload)
        return await self.engine.apply_create(user_id, draft)
    
    async def update_transaction(
        self,
        user_id: str,
        transaction_id: str,
        payload: dict[str, Any],
    ) -> Transaction:
        """거래 부분 수정 (전송된 필드만)"""
        patch = TransactionPatch.from_dict(payload)
        return await self.engine.apply_update(user_id, transaction_id, patch)
    
    async def replace_transaction(
        self,
        user_id: str,
        transaction_id: str,
        payload: dict[str, Any],
    ) -> Transaction:
        """거래 전체 교체
        
        생략된 선택 필드는 비우고, 생략된 필수 필드(date, status)는 유지.
        """
        changes = {
            name: payload.get(name)
            for name in PATCHABLE_FIELDS
            if payload.get(name) is not None or name in CLEARABLE_FIELDS
        }
        patch = TransactionPatch(
            changes=changes,
            expected_version=payload.get("expected_version"),
        )
        return await self.engine.apply_update(user_id, transaction_id, patch)
    
    async def delete_transaction(
        self,
        user_id: str,
        transaction_id: str,
        expected_version: int | None = None,
    ) -> None:
        """거래 삭제"""
        await self.engine.apply_delete(user_id, transaction_id, expected_version)
