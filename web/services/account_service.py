"""
계좌 서비스

계좌 생성/조회/정보 수정 및 잔액 정합 검증.
"""

import logging
from typing import Any

from core.domain.errors import AccountNotFound
from core.ledger.engine import BalanceDrift, BalanceEngine
from core.ledger.models import Account, AccountDraft, AccountUpdate

logger = logging.getLogger(__name__)


class AccountService:
    """계좌 서비스
    
    잔액은 생성 시 opening_balance로 시작하며 이후 거래로만 변경된다.
    """
    
    def __init__(self, engine: BalanceEngine):
        self.engine = engine
        self.store = engine.store
    
    async def create_account(self, user_id: str, payload: dict[str, Any]) -> Account:
        draft = AccountDraft.from_dict(payload)
        return await self.store.create_account(user_id, draft)
    
    async def list_accounts(self, user_id: str) -> list[Account]:
        return await self.store.list_accounts(user_id)
    
    async def get_account(self, user_id: str, account_id: str) -> Account:
        """계좌 조회
        
        Raises:
            AccountNotFound: 없거나 다른 사용자 소유
        """
        account = await self.store.get_account(account_id, user_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account
    
    async def update_account(
        self,
        user_id: str,
        account_id: str,
        changes: dict[str, Any],
    ) -> Account:
        """계좌 정보 수정 (잔액 제외)
        
        Raises:
            ValidationError: 수정 불가 필드 또는 값 오류
            AccountNotFound: 없거나 다른 사용자 소유
        """
        update = AccountUpdate.from_dict(changes)
        account = await self.store.update_account(account_id, user_id, update)
        
        if update.changes.get("is_active") is False:
            logger.info(
                f"Account closed: {account_id}",
                extra={"user_id": user_id, "balance": str(account.balance)},
            )
        return account
    
    async def reconcile(self, user_id: str, account_id: str) -> BalanceDrift:
        return await self.engine.reconcile_account(user_id, account_id)
