import copy
from typing import Any, Dict, Optional

from src.core.interfaces.cache import ICacheBackend


class MemoryCache(ICacheBackend):
    """Process-local cache used when no REDIS_URL is configured."""

    def __init__(self):
        self._store: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        value = self._store.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None):
        # expiry is judged from the entry timestamp, ttl is not needed here
        self._store[key] = copy.deepcopy(value)
