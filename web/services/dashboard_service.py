"""
대시보드 서비스

사용자 계좌 잔액 요약
"""

from typing import Any

from core.ledger.store import LedgerStore


class DashboardService:
    """대시보드 서비스"""
    
    def __init__(self, store: LedgerStore):
        self.store = store
    
    async def get_summary(self, user_id: str) -> dict[str, Any]:
        """활성 계좌 통화별 합계와 계좌/거래 건수"""
        return await self.store.get_summary(user_id)
