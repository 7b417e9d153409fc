"""
Keyed critical sections.

One asyncio.Lock per key, re-entrant for the owning task, so an order saga
holding every product lock can call ledger operations that lock the same
product again.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

# ═══════════════════════════════════════════════════════════════════════════════
# KeyedLock
# ═══════════════════════════════════════════════════════════════════════════════


class KeyedLock:
    """
    Per-key mutual exclusion.

    Keys are always acquired in ascending order, whatever order the caller
    passes them in.

    Example:
        locks = KeyedLock()

        async with locks.hold("sku-2", "sku-1"):
            ...  # sku-1 then sku-2 are held
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._owners: dict[str, asyncio.Task[object]] = {}
        self._depth: dict[str, int] = {}
        self._users: dict[str, int] = {}  # holder + waiters per key

    def __len__(self) -> int:
        return len(self._locks)

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _forget(self, key: str) -> None:
        self._users[key] -= 1
        if self._users[key] == 0:
            del self._users[key]
            del self._locks[key]

    async def _acquire(self, key: str, task: asyncio.Task[object] | None) -> None:
        if task is not None and self._owners.get(key) is task:
            self._depth[key] += 1
            return
        lock = self._lock_for(key)
        try:
            await lock.acquire()
        except BaseException:
            self._forget(key)
            raise
        if task is not None:
            self._owners[key] = task
        self._depth[key] = 1

    def _release(self, key: str) -> None:
        self._depth[key] -= 1
        if self._depth[key] == 0:
            del self._depth[key]
            self._owners.pop(key, None)
            self._locks[key].release()
            self._forget(key)

    def is_held(self, key: str) -> bool:
        return key in self._depth

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        task = asyncio.current_task()
        acquired: list[str] = []
        try:
            for key in sorted(set(keys)):
                await self._acquire(key, task)
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._release(key)


__all__ = ("KeyedLock",)
