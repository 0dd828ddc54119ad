"""
응답 스키마 (Pydantic)

Web API 응답 데이터 직렬화 (금액은 문자열)
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    
    status: str = Field(default="ok", description="서비스 상태")
    database: str = Field(..., description="DB 연결 상태")
    version: str = Field(..., description="API 버전")


class TransactionResponse(BaseModel):
    """거래 응답"""
    
    transaction_id: str
    transaction_type: str
    amount: str
    account_id: str
    to_account_id: str | None = None
    status: str
    date: str
    category_id: str | None = None
    payee_id: str | None = None
    notes: str | None = None
    version: int
    created_at: str | None = None
    updated_at: str | None = None


class AccountResponse(BaseModel):
    """계좌 응답"""
    
    account_id: str
    name: str
    account_type: str
    balance: str
    opening_balance: str
    currency: str
    is_active: bool
    credit_limit: str | None = None
    description: str | None = None
    notes: str | None = None
    version: int
    created_at: str | None = None
    updated_at: str | None = None


class BalanceDriftResponse(BaseModel):
    """잔액 정합 검증 응답"""
    
    account_id: str
    currency: str
    stored_balance: str = Field(..., description="저장된 잔액")
    expected_balance: str = Field(..., description="초기 잔액 + 거래 효과 합계")
    drift: str = Field(..., description="stored - expected")
    has_drift: bool
    transaction_count: int


class AccountSummary(BaseModel):
    """대시보드 계좌 항목"""
    
    account_id: str
    name: str
    account_type: str
    balance: str
    currency: str
    is_active: bool
    transaction_count: int


class DashboardSummaryResponse(BaseModel):
    """대시보드 요약 응답"""
    
    totals_by_currency: dict[str, str] = Field(
        ..., description="활성 계좌의 통화별 잔액 합계"
    )
    accounts: list[AccountSummary]
    account_count: int
    transaction_count: int
