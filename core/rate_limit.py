import threading
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Depends, HTTPException, Request, status

from core.auth import get_optional_principal
from core.config import settings
from core.logging_config import get_logger
from core.redis_client import RedisClient, build_redis_client

logger = get_logger(__name__)


class InMemoryWindowCounter:
    """Fixed-window counters for processes without Redis"""

    def __init__(self):
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._next_sweep = 0.0

    def hit(self, key: str, window_seconds: int) -> Tuple[int, int]:
        now = time.time()
        with self._lock:
            count, expires = self._windows.get(key, (0, 0.0))
            if now >= self._next_sweep:
                self._drop_expired(now)
                self._next_sweep = now + window_seconds
            if now >= expires:
                count, expires = 0, now + window_seconds
            count += 1
            self._windows[key] = (count, expires)
        return count, max(int(expires - now), 0)

    def _drop_expired(self, now: float):
        expired = [key for key, (_, expires) in self._windows.items() if now >= expires]
        for key in expired:
            del self._windows[key]

    def active_windows(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self):
        with self._lock:
            self._windows.clear()


fallback_counter = InMemoryWindowCounter()


class RateLimiter:
    """FastAPI dependency admitting at most ``max_requests`` per window per key.

    Counters live in Redis when it is configured; if Redis cannot be reached
    the process-local counter takes over for that request.
    """

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: int,
        message: str,
        key_func: Optional[Callable] = None,
        redis_client: Optional[RedisClient] = None,
        counter: Optional[InMemoryWindowCounter] = None,
    ):
        self.name = name
        self.max_requests = max(max_requests, 1)
        self.window_seconds = window_seconds
        self.message = message
        self.key_func = key_func or client_ip_key
        self.redis = redis_client
        self.counter = counter if counter is not None else fallback_counter

    def hit(self, key: str) -> Tuple[int, int]:
        full_key = f"ratelimit:{self.name}:{key}"
        if self.redis is not None:
            count = self.redis.incr_window(full_key, self.window_seconds)
            if count is not None:
                ttl = self.redis.ttl(full_key)
                return count, ttl if ttl > 0 else self.window_seconds
        return self.counter.hit(full_key, self.window_seconds)

    def __call__(self, request: Request, principal=Depends(get_optional_principal)):
        if not settings.RATE_LIMIT_ENABLED:
            return

        key = self.key_func(request, principal)
        count, retry_after = self.hit(key)
        if count > self.max_requests:
            logger.warning(
                f"Rate limit exceeded: {self.name}",
                extra={"client_host": key, "endpoint": request.url.path, "method": request.method},
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={"Retry-After": str(retry_after)},
            )


def client_ip_key(request: Request, principal=None) -> str:
    return request.client.host if request.client else "unknown"


def principal_or_ip_key(request: Request, principal=None) -> str:
    if principal is not None:
        return f"user:{principal['id']}"
    return client_ip_key(request)


redis_client = build_redis_client()

api_rate_limiter = RateLimiter(
    "api",
    settings.RATE_LIMIT_MAX_REQUESTS,
    settings.RATE_LIMIT_WINDOW_SECONDS,
    "Too many requests, please try again later",
    redis_client=redis_client,
)

write_rate_limiter = RateLimiter(
    "write",
    settings.RATE_LIMIT_MAX_REQUESTS // 2,
    settings.RATE_LIMIT_WINDOW_SECONDS,
    "Too many write requests, please try again later",
    redis_client=redis_client,
)

user_rate_limiter = RateLimiter(
    "user",
    settings.USER_RATE_LIMIT_MAX_REQUESTS,
    settings.USER_RATE_LIMIT_WINDOW_SECONDS,
    "Too many requests for your account, please try again later",
    key_func=principal_or_ip_key,
    redis_client=redis_client,
)
