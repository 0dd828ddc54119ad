"""
FastAPI 애플리케이션

라우터 등록 및 앱 설정.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config.loader import get_settings
from core.logging import setup_logging

# 로깅 설정 (콘솔 + 파일)
setup_logging("web", level=get_settings().web.log_level)

from web.routes import accounts, dashboard, health, transactions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 생명주기 관리"""
    from adapters.db.sqlite_adapter import SQLiteAdapter
    from core.ledger.schema import init_ledger_schema
    
    settings = get_settings()
    
    # 시작 시 - DB 스키마 자동 초기화
    async with SQLiteAdapter(
        settings.db_path,
        busy_timeout_ms=settings.database.busy_timeout_ms,
    ) as db:
        await init_ledger_schema(db)
    
    logger.info("Web: Ledger 스키마 초기화 완료", extra={"db_path": str(settings.db_path)})
    
    yield


app = FastAPI(
    title="Balance Engine API",
    description="개인 가계부 계좌/거래 잔액 API",
    version=health.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS 설정 (개발용)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =========================================================================
# API 라우터 등록
# =========================================================================

app.include_router(health.router)
app.include_router(transactions.router)
app.include_router(accounts.router)
app.include_router(dashboard.router)
