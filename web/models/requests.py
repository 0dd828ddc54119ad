"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증

금액은 문자열/숫자 모두 허용하고 Decimal 변환과 범위 검증은
core.ledger에서 수행한다 (오류 시 400).
"""

from pydantic import BaseModel, Field

Amount = str | int | float


class TransactionCreateRequest(BaseModel):
    """거래 생성 요청"""
    
    transaction_type: str = Field(..., description="거래 유형 (deposit/withdrawal/transfer)")
    amount: Amount = Field(..., description="거래 금액 (0 초과)")
    account_id: str = Field(..., description="대상(출발) 계좌 ID")
    to_account_id: str | None = Field(default=None, description="도착 계좌 ID (transfer 전용)")
    status: str | None = Field(default=None, description="reconciled / unreconciled")
    date: str | None = Field(default=None, description="거래 일시 (ISO 8601, 기본: 현재)")
    category_id: str | None = Field(default=None, description="카테고리 ID")
    payee_id: str | None = Field(default=None, description="수취인 ID")
    notes: str | None = Field(default=None, description="메모 (최대 500자)")
    
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "transaction_type": "withdrawal",
                    "amount": "20.00",
                    "account_id": "acc-0123456789abcdef",
                    "notes": "groceries",
                },
                {
                    "transaction_type": "transfer",
                    "amount": "40",
                    "account_id": "acc-0123456789abcdef",
                    "to_account_id": "acc-fedcba9876543210",
                },
            ]
        }
    }


class TransactionReplaceRequest(TransactionCreateRequest):
    """거래 전체 교체 요청 (PUT)
    
    생략된 선택 필드(to_account_id, category_id, payee_id, notes)는 비워진다.
    """
    
    expected_version: int | None = Field(
        default=None,
        description="예상 버전 (낙관적 락, None이면 무시)",
    )


class TransactionPatchRequest(BaseModel):
    """거래 부분 수정 요청 (PATCH)
    
    전송한 필드만 변경. null은 값을 비움.
    transfer에서 다른 유형으로 바꿀 때는 to_account_id: null 명시 필요.
    """
    
    transaction_type: str | None = None
    amount: Amount | None = None
    account_id: str | None = None
    to_account_id: str | None = None
    status: str | None = None
    date: str | None = None
    category_id: str | None = None
    payee_id: str | None = None
    notes: str | None = None
    expected_version: int | None = Field(
        default=None,
        description="예상 버전 (낙관적 락, None이면 무시)",
    )


class AccountCreateRequest(BaseModel):
    """계좌 생성 요청"""
    
    name: str = Field(..., description="계좌 이름 (최대 60자)")
    account_type: str = Field(default="other", description="계좌 유형")
    currency: str = Field(..., description="통화 코드 (예: USD, KRW)")
    opening_balance: Amount = Field(default="0", description="초기 잔액")
    credit_limit: Amount | None = Field(default=None, description="신용 한도 (표시용)")
    description: str | None = None
    notes: str | None = None
    is_active: bool = True


class AccountUpdateRequest(BaseModel):
    """계좌 정보 수정 요청 (PATCH)
    
    전송한 필드만 변경. 잔액/통화/초기 잔액 같은 수정 불가 필드를
    보내면 400. is_active: false로 계좌 해지.
    """
    
    name: str | None = None
    description: str | None = None
    notes: str | None = None
    credit_limit: Amount | None = None
    is_active: bool | None = None
    
    # 수정 불가 필드도 도메인 검증까지 전달 (조용히 무시하지 않음)
    model_config = {
        "extra": "allow",
        "json_schema_extra": {
            "examples": [
                {"is_active": False, "notes": "closed 2024-06"},
            ]
        },
    }
