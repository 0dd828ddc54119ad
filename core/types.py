"""
타입 정의 모듈

Enum 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class TransactionType(str, Enum):
    """거래 유형

    잔액 효과:
    - DEPOSIT: 출발 계좌 +amount
    - WITHDRAWAL: 출발 계좌 -amount
    - TRANSFER: 출발 계좌 -amount, 도착 계좌 +amount
    """

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    """거래 상태 (잔액에 영향 없음)"""

    RECONCILED = "reconciled"
    UNRECONCILED = "unreconciled"


class AccountType(str, Enum):
    """계좌 유형 (표시용, 잔액 계산에 영향 없음)"""

    SAVINGS = "savings"
    CHECKING = "checking"
    CREDIT = "credit"
    CASH = "cash"
    INVESTMENT = "investment"
    LOAN = "loan"
    DEMAT = "demat"
    OTHER = "other"
