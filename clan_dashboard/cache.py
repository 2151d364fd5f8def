"""API response caching with TTL and de-duplication of concurrent requests."""
import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple


class APICache:
    """In-memory TTL cache for API payloads, one lock per key."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._cache: Dict[str, Tuple[Any, float]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.clock = clock

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def get(self, key: str, ttl: float) -> Optional[Any]:
        """Get cached value if it exists and hasn't expired."""
        async with self._get_lock(key):
            entry = self._cache.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self.clock() - stored_at < ttl:
                return value
            del self._cache[key]
        return None

    async def set(self, key: str, value: Any) -> None:
        async with self._get_lock(key):
            self._cache[key] = (value, self.clock())

    async def invalidate(self, key: str) -> None:
        async with self._get_lock(key):
            self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()
        self._locks.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {"total_keys": len(self._cache)}


class RequestDeduplicator:
    """Prevent duplicate concurrent requests for the same resource."""

    def __init__(self):
        self._pending: Dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    async def get_or_create(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        If a request for this key is already pending, wait for it.
        Otherwise, start a new one using the factory coroutine function.
        """
        async with self._lock:
            task = self._pending.get(key)
            if task is None:
                task = asyncio.create_task(factory())
                self._pending[key] = task

        try:
            return await task
        finally:
            async with self._lock:
                if self._pending.get(key) is task:
                    del self._pending[key]

    @property
    def pending(self) -> int:
        return len(self._pending)
