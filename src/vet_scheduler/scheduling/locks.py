"""In-process serialization of scheduling writes, keyed by veterinarian."""

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Optional

logger = logging.getLogger(__name__)


class VeterinarianLockRegistry:
    """
    One ``asyncio.Lock`` per key, alive while someone holds or awaits it.

    Keys are usually veterinarian ids. Callers holding several keys acquire
    them in a canonical order so two writers never wait on each other. A
    key's lock is discarded once its last holder releases it.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._locks

    def get(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def _acquire(self, key: Hashable) -> AsyncIterator[None]:
        lock = self.get(key)
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                self._locks.pop(key, None)

    @asynccontextmanager
    async def hold(self, *keys: Optional[Hashable]) -> AsyncIterator[None]:
        """Hold the locks for every non-None key until the block exits."""
        ordered = sorted({k for k in keys if k is not None}, key=str)
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self._acquire(key))
            logger.debug(f"Holding scheduling locks {ordered}")
            yield
