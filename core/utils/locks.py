"""
키 단위 비동기 락

계좌/거래 ID별 배타적 lease 제공.
여러 키를 잡을 때는 항상 정렬된 순서(작은 ID 먼저)로 획득하여 교착 방지.

사용 예시:
```python
leases = KeyedLock()

async with leases.hold("account:acc-1", "account:acc-2"):
    ...  # 두 계좌에 대한 배타 구간
```
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLock:
    """키별 asyncio.Lock 레지스트리
    
    사용 중인 키의 락만 보관하고, 마지막 사용자가 반납하면 제거.
    (이벤트 루프가 바뀌어도 오래된 락이 남지 않음)
    """
    
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._refs: dict[str, int] = {}
    
    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
            self._refs[key] = 0
        self._refs[key] += 1
        return lock
    
    def _checkin(self, key: str) -> None:
        self._refs[key] -= 1
        if self._refs[key] == 0:
            del self._refs[key]
            del self._locks[key]
    
    def is_locked(self, key: str) -> bool:
        """키가 현재 잠겨 있는지 확인"""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
    
    @property
    def active_keys(self) -> list[str]:
        """대기 또는 보유 중인 키 목록"""
        return sorted(self._locks)
    
    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[list[str]]:
        """여러 키를 정렬 순서로 획득
        
        중복 키는 한 번만 획득.
        
        Yields:
            획득한 키 목록 (정렬됨)
        """
        ordered = sorted(set(keys))
        locks = [(key, self._checkout(key)) for key in ordered]
        acquired: list[asyncio.Lock] = []
        
        try:
            for _, lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key, _ in locks:
                self._checkin(key)
