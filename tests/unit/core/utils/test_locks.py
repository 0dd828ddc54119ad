"""
core/utils/locks.py 테스트
"""

import asyncio

import pytest

from core.utils.locks import KeyedLock


class TestKeyedLock:
    """KeyedLock 테스트"""
    
    @pytest.mark.asyncio
    async def test_same_key_serialized(self) -> None:
        leases = KeyedLock()
        order: list[str] = []
        
        async def worker(name: str) -> None:
            async with leases.hold("account:a"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")
        
        await asyncio.gather(worker("1"), worker("2"))
        
        assert order == ["1-in", "1-out", "2-in", "2-out"]
    
    @pytest.mark.asyncio
    async def test_different_keys_parallel(self) -> None:
        leases = KeyedLock()
        inside = asyncio.Event()
        
        async def holder() -> None:
            async with leases.hold("account:a"):
                inside.set()
                await asyncio.sleep(0.05)
        
        task = asyncio.create_task(holder())
        await inside.wait()
        
        # 다른 키는 기다리지 않음
        async with leases.hold("account:b"):
            assert leases.is_locked("account:a")
        
        await task
    
    @pytest.mark.asyncio
    async def test_sorted_and_deduplicated(self) -> None:
        leases = KeyedLock()
        
        async with leases.hold("account:b", "account:a", "account:b") as keys:
            assert keys == ["account:a", "account:b"]
            assert leases.active_keys == ["account:a", "account:b"]
    
    @pytest.mark.asyncio
    async def test_opposite_order_no_deadlock(self) -> None:
        """A→B, B→A를 동시에 잡아도 교착 없음"""
        leases = KeyedLock()
        
        async def worker(*keys: str) -> None:
            async with leases.hold(*keys):
                await asyncio.sleep(0.01)
        
        await asyncio.wait_for(
            asyncio.gather(
                worker("account:a", "account:b"),
                worker("account:b", "account:a"),
            ),
            timeout=1.0,
        )
    
    @pytest.mark.asyncio
    async def test_released_keys_removed(self) -> None:
        """반납 후 레지스트리 비움 (예외 포함)"""
        leases = KeyedLock()
        
        with pytest.raises(RuntimeError):
            async with leases.hold("tx:1", "account:a"):
                raise RuntimeError("boom")
        
        assert leases.active_keys == []
        assert not leases.is_locked("tx:1")
    
    @pytest.mark.asyncio
    async def test_cancelled_waiter_cleans_up(self) -> None:
        leases = KeyedLock()
        entered = asyncio.Event()
        
        async def holder() -> None:
            async with leases.hold("account:a"):
                entered.set()
                await asyncio.sleep(0.05)
        
        async def waiter() -> None:
            async with leases.hold("account:a"):
                pass
        
        holding = asyncio.create_task(holder())
        await entered.wait()
        waiting = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        waiting.cancel()
        
        with pytest.raises(asyncio.CancelledError):
            await waiting
        await holding
        
        assert leases.active_keys == []
