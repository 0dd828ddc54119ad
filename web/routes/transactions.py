"""
거래 라우트

거래 생성/조회/수정/삭제 API.
잔액 변경은 Balance Engine이 처리하며, 라우트는 HTTP 변환만 담당.
"""

from fastapi import APIRouter, Depends, Path, Query

from core.domain.errors import LedgerError
from core.ledger.engine import BalanceEngine
from web.dependencies import get_current_user_id, get_engine
from web.errors import to_http_exception
from web.models.requests import (
    TransactionCreateRequest,
    TransactionPatchRequest,
    TransactionReplaceRequest,
)
from web.models.responses import TransactionResponse
from web.services.transaction_service import TransactionService

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])


@router.post("", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    request: TransactionCreateRequest,
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> TransactionResponse:
    """거래 생성
    
    대상 계좌(이체는 양쪽 계좌) 잔액을 함께 갱신.
    """
    service = TransactionService(engine)
    
    try:
        tx = await service.create_transaction(user_id, request.model_dump())
    except LedgerError as e:
        raise to_http_exception(e)
    
    return TransactionResponse(**tx.to_dict())


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str = Path(..., description="거래 ID"),
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> TransactionResponse:
    """거래 조회"""
    service = TransactionService(engine)
    
    try:
        tx = await service.get_transaction(user_id, transaction_id)
    except LedgerError as e:
        raise to_http_exception(e)
    
    return TransactionResponse(**tx.to_dict())


@router.patch("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    request: TransactionPatchRequest,
    transaction_id: str = Path(..., description="거래 ID"),
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> TransactionResponse:
    """거래 부분 수정
    
    기존 잔액 효과를 되돌린 뒤 수정된 효과를 적용.
    expected_version을 지정하면 해당 버전일 때만 수정 (불일치 시 409).
    """
    service = TransactionService(engine)
    
    try:
        tx = await service.update_transaction(
            user_id,
            transaction_id,
            request.model_dump(exclude_unset=True),
        )
    except LedgerError as e:
        raise to_http_exception(e)
    
    return TransactionResponse(**tx.to_dict())


@router.put("/{transaction_id}", response_model=TransactionResponse)
async def replace_transaction(
    request: TransactionReplaceRequest,
    transaction_id: str = Path(..., description="거래 ID"),
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> TransactionResponse:
    """거래 전체 교체"""
    service = TransactionService(engine)
    
    try:
        tx = await service.replace_transaction(
            user_id,
            transaction_id,
            request.model_dump(),
        )
    except LedgerError as e:
        raise to_http_exception(e)
    
    return TransactionResponse(**tx.to_dict())


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str = Path(..., description="거래 ID"),
    expected_version: int | None = Query(default=None, description="예상 버전"),
    user_id: str = Depends(get_current_user_id),
    engine: BalanceEngine = Depends(get_engine),
) -> dict[str, str]:
    """거래 삭제 (잔액 효과 역분개)"""
    service = TransactionService(engine)
    
    try:
        await service.delete_transaction(user_id, transaction_id, expected_version)
    except LedgerError as e:
        raise to_http_exception(e)
    
    return {"message": f"Transaction deleted: {transaction_id}"}
