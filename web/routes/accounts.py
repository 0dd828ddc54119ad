"""
계좌 라우트

계좌 생성/조회/수정 및 잔액 정합 검증 API
"""

from fastapi import APIRouter, Depends, Path

from core.domain.errors import LedgerError
from core.ledger.engine import BalanceEngine
from web.dependencies import get_current_user_id, get_engine
from web.errors import to_http_exception
from web.models.requests import AccountCreateRequest, AccountUpdateRequest
from web.models.responses import AccountResponse, BalanceDriftResponse
from web.services.account_service import AccountService

router = APIRouter(prefix="/api/accounts", tags=["Accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
async def create_account(
    request: AccountCreateRequest,
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> AccountResponse:
    """계좌 생성 (잔액 = 초기 잔액)"""
    service = AccountService(engine)
    
    try:
        account = await service.create_account(user_id, request.model_dump())
    except LedgerError as e:
        raise to_http_exception(e)
    
    return AccountResponse(**account.to_dict())


@router.get("", response_model=list[AccountResponse])
async def list_accounts(
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> list[AccountResponse]:
    """계좌 목록 조회"""
    service = AccountService(engine)
    
    accounts = await service.list_accounts(user_id)
    
    return [AccountResponse(**a.to_dict()) for a in accounts]


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: str = Path(..., description="계좌 ID"),
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> AccountResponse:
    """계좌 조회"""
    service = AccountService(engine)
    
    try:
        account = await service.get_account(user_id, account_id)
    except LedgerError as e:
        raise to_http_exception(e)
    
    return AccountResponse(**account.to_dict())


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(
    request: AccountUpdateRequest,
    account_id: str = Path(..., description="계좌 ID"),
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> AccountResponse:
    """계좌 정보 수정
    
    이름/설명/메모/신용 한도/활성 여부만 변경 가능.
    해지(is_active: false)해도 거래 내역과 잔액은 유지된다.
    """
    service = AccountService(engine)
    
    try:
        account = await service.update_account(
            user_id, account_id, request.model_dump(exclude_unset=True)
        )
    except LedgerError as e:
        raise to_http_exception(e)
    
    return AccountResponse(**account.to_dict())


@router.get("/{account_id}/reconcile", response_model=BalanceDriftResponse)
async def reconcile_account(
    account_id: str = Path(..., description="계좌 ID"),
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> BalanceDriftResponse:
    """잔액 정합 검증
    
    초기 잔액 + 전체 거래 효과와 저장된 잔액을 비교.
    """
    service = AccountService(engine)
    
    try:
        drift = await service.reconcile(user_id, account_id)
    except LedgerError as e:
        raise to_http_exception(e)
    
    return BalanceDriftResponse(**drift.to_dict())
