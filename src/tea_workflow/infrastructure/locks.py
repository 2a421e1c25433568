"""Per-key asyncio locks.

The workflow engine does not serialize work on a bid. Anything that
commits bid state takes the bid's lock first so two automation runs or two
operators cannot interleave writes to the same bid.

Usage:
    locks = KeyedLock()
    async with locks.hold(bid.id):
        ...
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLock:
    """A registry of asyncio.Lock objects, one per key, created on demand."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                # Drop idle locks so the registry does not grow with every bid
                del self._waiters[key]
                del self._locks[key]

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
