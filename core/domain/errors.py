"""
Ledger 오류 분류

- ValidationError: 잘못된 입력 (금액, 이체 계좌 조합 등) → 400
- NotFoundError: 거래/계좌/카테고리/수취인이 없거나 요청 사용자 소유가 아님 → 404
- ConflictError: 동시 수정 감지 (버전 불일치) → 409
- StorageError: 저장소 실패 (원자적 스코프 실패, 타임아웃 포함) → 503

Route 계층이 HTTP 상태 코드로 변환한다.
"""


class LedgerError(Exception):
    """Ledger 오류 기본 클래스
    
    Attributes:
        message: 내부 로그용 메시지
        user_message: 사용자에게 노출해도 되는 메시지
    """
    
    generic_message: str | None = None
    
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
    
    @property
    def user_message(self) -> str:
        """사용자 노출용 메시지"""
        if self.generic_message is not None:
            return self.generic_message
        return self.message


# =========================================================================
# 검증 오류
# =========================================================================


class ValidationError(LedgerError):
    """입력 검증 실패"""
    pass


class InvalidAmount(ValidationError):
    """금액이 0 이하이거나 유한한 수가 아님"""
    
    def __init__(self, amount: object):
        self.amount = amount
        super().__init__(f"Amount must be greater than 0: {amount}")


class InvalidTransfer(ValidationError):
    """이체 계좌 조합 오류
    
    - 이체인데 to_account_id 없음
    - to_account_id == account_id
    - 이체가 아닌데 to_account_id 있음
    - 서로 다른 통화 계좌 간 이체
    """
    pass


class InactiveAccount(ValidationError):
    """비활성(해지) 계좌 사용 시도"""
    
    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account is closed: {account_id}")


# =========================================================================
# 조회 실패
# =========================================================================


class NotFoundError(LedgerError):
    """레코드 없음 (또는 다른 사용자 소유)"""
    
    kind: str = "Record"
    
    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"{self.kind} not found: {record_id}")


class AccountNotFound(NotFoundError):
    kind = "Account"


class TransactionNotFound(NotFoundError):
    kind = "Transaction"


class CategoryNotFound(NotFoundError):
    kind = "Category"


class PayeeNotFound(NotFoundError):
    kind = "Payee"


# =========================================================================
# 동시성 / 저장소 오류
# =========================================================================


class ConflictError(LedgerError):
    """동시 수정 감지 (낙관적 락 버전 불일치)"""
    
    generic_message = "The record was modified concurrently. Please try again."


class StorageError(LedgerError):
    """저장소 실패
    
    내부 정보를 노출하지 않도록 user_message는 고정 문구.
    """
    
    generic_message = "A storage error occurred. Please try again."


class CompensationError(StorageError):
    """보상 롤백 실패
    
    잔액이 불일치 상태일 수 있음. 수동 정합 확인 필요.
    """
    
    def __init__(self, message: str, operation: str, pending_steps: int):
        self.operation = operation
        self.pending_steps = pending_steps
        super().__init__(message)
