from typing import Any, Dict

from pydantic import BaseModel


class CacheEntry(BaseModel):
    data: Dict[str, Any]
    timestamp: int  # ms since epoch

    def is_fresh(self, now_ms: int, expiry_ms: int) -> bool:
        return now_ms - self.timestamp < expiry_ms
