import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from src.core.entities.cache import CacheEntry
from src.core.interfaces.cache import ICacheBackend

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class ReadThroughCache:
    """
    Serves `{data, timestamp}` entries from a cache backend and recomputes
    them once they are older than the key's expiry window.

    Misses for the same key are serialised with a per-key lock, so one worker
    recomputes at most once per window. Separate processes sharing the backend
    can still both recompute; the last write wins.
    """

    def __init__(self, backend: Optional[ICacheBackend], clock: Callable[[], int] = now_ms):
        self.backend = backend
        self.clock = clock
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def read(self, key: str, expiry_ms: int) -> Optional[Dict[str, Any]]:
        if not self.backend:
            return None
        # backends do blocking I/O
        raw = await asyncio.to_thread(self.backend.get, key)
        if raw is None:
            return None
        try:
            entry = CacheEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed cache entry for {key}: {e}")
            return None
        if not entry.is_fresh(self.clock(), expiry_ms):
            logger.info(f"Cache entry for {key} expired")
            return None
        return entry.data

    async def write(self, key: str, data: Dict[str, Any], expiry_ms: int):
        if not self.backend:
            return
        entry = CacheEntry(data=data, timestamp=self.clock())
        # the backend TTL only reclaims space; freshness is decided by timestamp
        await asyncio.to_thread(
            self.backend.set, key, entry.model_dump(mode="json"), max(1, expiry_ms // 1000) * 2
        )

    async def get_or_compute(
        self,
        key: str,
        expiry_ms: int,
        recompute: Callable[[], Awaitable[Dict[str, Any]]]
    ) -> Dict[str, Any]:
        cached = await self.read(key, expiry_ms)
        if cached is not None:
            logger.info(f"Cache hit for {key}")
            return cached

        async with self._lock_for(key):
            cached = await self.read(key, expiry_ms)
            if cached is not None:
                return cached

            logger.info(f"Cache miss for {key}, recomputing")
            data = await recompute()
            await self.write(key, data, expiry_ms)
            return data
