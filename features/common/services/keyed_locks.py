import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable

class KeyedLocks:
    """One asyncio lock per key (city id, station id).

    Serializes read-modify-write sequences against a single entity while
    letting unrelated entities proceed concurrently. Only valid inside one
    event loop, so the service runs with a single worker.

    A key's lock is dropped once nobody holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def __call__(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
