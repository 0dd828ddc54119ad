"""
어댑터 레이어

외부 저장소(DB, 인메모리 Mock)와의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.interfaces import ILedgerStore

__all__ = [
    "ILedgerStore",
]
