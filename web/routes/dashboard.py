"""
대시보드 라우트

GET /api/dashboard/summary - 계좌 잔액 요약
"""

from fastapi import APIRouter, Depends

from core.ledger.store import LedgerStore
from web.dependencies import get_current_user_id, get_ledger_store
from web.models.responses import DashboardSummaryResponse
from web.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardSummaryResponse)
async def get_summary(
    user_id: str = Depends(get_current_user_id),
    store: LedgerStore = Depends(get_ledger_store),
) -> DashboardSummaryResponse:
    """대시보드 요약 조회"""
    service = DashboardService(store)
    
    summary = await service.get_summary(user_id)
    
    return DashboardSummaryResponse(**summary)
