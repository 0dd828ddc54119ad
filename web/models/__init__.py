"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import (
    AccountCreateRequest,
    AccountUpdateRequest,
    TransactionCreateRequest,
    TransactionPatchRequest,
    TransactionReplaceRequest,
)
from web.models.responses import (
    AccountResponse,
    AccountSummary,
    BalanceDriftResponse,
    DashboardSummaryResponse,
    HealthResponse,
    TransactionResponse,
)

__all__ = [
    # Requests
    "AccountCreateRequest",
    "AccountUpdateRequest",
    "TransactionCreateRequest",
    "TransactionPatchRequest",
    "TransactionReplaceRequest",
    # Responses
    "AccountResponse",
    "AccountSummary",
    "BalanceDriftResponse",
    "DashboardSummaryResponse",
    "HealthResponse",
    "TransactionResponse",
]
