"""
계좌 잔액 Ledger

거래(입금/출금/이체)와 계좌 잔액의 일관성을 유지하는 Balance Engine.

사용 예시:
```python
from core.ledger import BalanceEngine, LedgerStore, TransactionDraft

store = LedgerStore(db)
engine = BalanceEngine(store)

tx = await engine.apply_create(user_id, TransactionDraft.from_dict(payload))
drift = await engine.reconcile_account(user_id, tx.account_id)
```
"""

from core.ledger.effect import (
    BalanceDelta,
    compute_effect,
    effect_on_account,
    net_effect,
    reverse_effect,
)
from core.ledger.engine import BalanceDrift, BalanceEngine
from core.ledger.models import (
    Account,
    AccountDraft,
    AccountUpdate,
    Category,
    Payee,
    Transaction,
    TransactionDraft,
    TransactionPatch,
)
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.ledger.validator import Validator, check_draft

__all__ = [
    # 핵심 클래스
    "BalanceEngine",
    "BalanceDrift",
    "LedgerStore",
    "Validator",
    # 모델
    "Account",
    "AccountDraft",
    "AccountUpdate",
    "Category",
    "Payee",
    "Transaction",
    "TransactionDraft",
    "TransactionPatch",
    # 잔액 효과
    "BalanceDelta",
    "compute_effect",
    "reverse_effect",
    "net_effect",
    "effect_on_account",
    "check_draft",
    "init_ledger_schema",
]
