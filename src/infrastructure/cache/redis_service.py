import redis
import json
import logging
from typing import Optional, Any

from src.core.interfaces.cache import ICacheBackend

logger = logging.getLogger(__name__)


class RedisService(ICacheBackend):
    """
    JSON cache on Redis. Connection and command errors are logged and treated
    as a miss, so a broken cache only costs a recompute.
    """

    def __init__(self, redis_url: Optional[str], socket_timeout: float = 2.0):
        self.redis_url = redis_url
        self.client = None
        if self.redis_url:
            try:
                self.client = redis.from_url(
                    self.redis_url,
                    decode_responses=True,
                    socket_timeout=socket_timeout,
                    socket_connect_timeout=socket_timeout,
                )
                # Test connection
                self.client.ping()
                logger.info("Connected to Redis for caching.")
            except Exception as e:
                logger.warning(f"Failed to connect to Redis: {e}. Caching disabled.")
                self.client = None
        else:
            logger.info("REDIS_URL not set. Caching disabled.")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def get(self, key: str) -> Optional[Any]:
        if not self.client:
            return None
        try:
            data = self.client.get(key)
            if data:
                return json.loads(data)
            return None
        except Exception as e:
            logger.warning(f"Redis get error: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None):
        if not self.client:
            return
        try:
            serialized = json.dumps(value, default=str)
            if ttl_seconds:
                self.client.setex(key, ttl_seconds, serialized)
            else:
                self.client.set(key, serialized)
        except Exception as e:
            logger.warning(f"Redis set error: {e}")
