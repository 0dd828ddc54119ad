"""
Balance Effect 계산

거래 1건이 계좌 잔액에 주는 영향을 (account_id, signed_delta) 목록으로 변환.
생성/수정/삭제 모두 이 모듈의 함수만 사용한다.

- deposit:    [(account_id, +amount)]
- withdrawal: [(account_id, -amount)]
- transfer:   [(account_id, -amount), (to_account_id, +amount)]

역분개(reversal)는 같은 목록의 부호 반전.
"""

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from core.domain.errors import InvalidTransfer
from core.types import TransactionType


class EffectSource(Protocol):
    """잔액 효과 계산에 필요한 필드 (Transaction, TransactionDraft 공통)"""
    
    transaction_type: TransactionType
    amount: Decimal
    account_id: str
    to_account_id: str | None


@dataclass(frozen=True)
class BalanceDelta:
    """계좌 1개에 대한 잔액 변화량"""
    
    account_id: str
    amount: Decimal  # 부호 포함
    
    def negate(self) -> "BalanceDelta":
        return BalanceDelta(self.account_id, -self.amount)


def compute_effect(tx: EffectSource) -> list[BalanceDelta]:
    """거래의 잔액 효과 계산
    
    Args:
        tx: 거래 (또는 초안)
        
    Returns:
        BalanceDelta 목록 (transfer는 출발 → 도착 순서)
        
    Raises:
        InvalidTransfer: transfer인데 도착 계좌가 없는 경우
    """
    amount = tx.amount
    
    if tx.transaction_type == TransactionType.DEPOSIT:
        return [BalanceDelta(tx.account_id, amount)]
    
    if tx.transaction_type == TransactionType.WITHDRAWAL:
        return [BalanceDelta(tx.account_id, -amount)]
    
    if tx.transaction_type == TransactionType.TRANSFER:
        if not tx.to_account_id:
            raise InvalidTransfer("To account is required for transfer transactions")
        return [
            BalanceDelta(tx.account_id, -amount),
            BalanceDelta(tx.to_account_id, amount),
        ]
    
    raise ValueError(f"Unknown transaction type: {tx.transaction_type}")


def reverse_effect(tx: EffectSource) -> list[BalanceDelta]:
    """거래 효과의 역분개 (부호 반전)"""
    return [delta.negate() for delta in compute_effect(tx)]


def net_effect(deltas: Iterable[BalanceDelta]) -> dict[str, Decimal]:
    """계좌별 변화량 합산
    
    Returns:
        {account_id: 합계} (합계 0인 계좌도 포함)
    """
    totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for delta in deltas:
        totals[delta.account_id] += delta.amount
    return dict(totals)


def effect_on_account(tx: EffectSource, account_id: str) -> Decimal:
    """특정 계좌에 대한 거래 효과 (관련 없으면 0)"""
    return net_effect(compute_effect(tx)).get(account_id, Decimal("0"))
