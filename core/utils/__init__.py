"""
유틸리티 패키지

키 단위 비동기 락 등 공통 유틸리티
"""

from core.utils.locks import KeyedLock

__all__ = [
    "KeyedLock",
]
