"""
헬스 체크 엔드포인트

GET /health - 서버 상태 확인
"""

import logging

from fastapi import APIRouter, Depends

from adapters.db.sqlite_adapter import SQLiteAdapter
from web.dependencies import get_db_write
from web.models.responses import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: SQLiteAdapter = Depends(get_db_write),
) -> HealthResponse:
    """서버 상태 확인
    
    Returns:
        HealthResponse: status, database, version 정보
    """
    database = "ok"
    try:
        await db.fetchone("SELECT 1")
    except Exception as e:
        logger.warning(f"Health check DB 조회 실패: {e}")
        database = "unavailable"
    
    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        database=database,
        version=API_VERSION,
    )
