from typing import Optional

import redis

from core.config import settings
from core.logging_config import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Redis wrapper for rate limit counters; every call degrades to None/False on failure"""

    def __init__(self, url: str, password: str = ""):
        self.redis_client = redis.from_url(
            url,
            password=password or None,
            decode_responses=True,
            retry_on_timeout=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )

    def ping(self) -> bool:
        """Test Redis connection"""
        try:
            return bool(self.redis_client.ping())
        except Exception:
            return False

    def incr_window(self, key: str, window_seconds: int) -> Optional[int]:
        """
        Increment a fixed-window counter, starting its expiry on first hit

        Args:
            key: Redis key
            window_seconds: Window length in seconds

        Returns:
            Current count, or None when Redis could not be reached
        """
        try:
            count = int(self.redis_client.incr(key))
            if count == 1:
                self.redis_client.expire(key, window_seconds)
            return count
        except Exception as e:
            logger.warning(f"Redis counter update failed for '{key}': {e}")
            return None

    def ttl(self, key: str) -> int:
        """Get time to live for key"""
        try:
            return self.redis_client.ttl(key)
        except Exception:
            return -1


def build_redis_client() -> Optional[RedisClient]:
    if not settings.REDIS_URL:
        return None
    return RedisClient(settings.REDIS_URL, settings.REDIS_PASSWORD)
