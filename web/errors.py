"""
Ledger 오류 → HTTP 응답 변환

- ValidationError → 400
- NotFoundError → 404
- ConflictError → 409 (재시도 안내)
- StorageError → 503 (재시도 안내, 내부 정보 비노출)
"""

import logging

from fastapi import HTTPException

from core.domain.errors import (
    ConflictError,
    LedgerError,
    NotFoundError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_CODES: list[tuple[type[LedgerError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StorageError, 503),
]


def status_code_for(error: LedgerError) -> int:
    """오류 타입에 대응하는 HTTP 상태 코드 (미분류는 500)"""
    for error_cls, status_code in _STATUS_CODES:
        if isinstance(error, error_cls):
            return status_code
    return 500


def to_http_exception(error: LedgerError) -> HTTPException:
    """LedgerError를 HTTPException으로 변환"""
    status_code = status_code_for(error)
    
    if status_code >= 500:
        logger.error(
            f"Ledger 저장소 오류: {error.message}",
            extra={"error": type(error).__name__},
        )
    
    return HTTPException(
        status_code=status_code,
        detail={"error": type(error).__name__, "message": error.user_message},
    )
