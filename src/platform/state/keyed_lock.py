"""
Keyed Lock (in-process)

One asyncio.Lock per key, created on demand and dropped when no task holds or
waits for it. Serializes work on the same aggregate inside one process.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Dict

from src.platform.logging.loguru_io import Logger


class KeyedLock:
    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, *, key: str) -> AsyncIterator[None]:
        """
        Args:
            key: Lock key (e.g., "checkout:0192f3...")
        """
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                Logger.base.debug(f'🔒 [LOCK] Acquired lock: {key}')
                yield
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                del self._locks[key]
            Logger.base.debug(f'🔓 [LOCK] Released lock: {key}')

    def is_locked(self, *, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
