"""Per-client request throttling on Redis."""
import logging
import time
import uuid

import redis
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from monitoring import rate_limit_exceeded_counter

logger = logging.getLogger(__name__)


def client_address(request: Request) -> str:
    """First hop of X-Forwarded-For when behind a proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RedisRateLimiter(BaseHTTPMiddleware):
    """
    Sliding-window limit of requests per client address.

    Each address owns a sorted set of request timestamps, so every service
    instance sharing the Redis server enforces one common window. When Redis
    cannot be reached requests are let through.
    """

    EXEMPT_PATHS = frozenset({"/health"})
    KEY_PREFIX = "rate:ip:"

    def __init__(
        self,
        app,
        redis_client: redis.Redis,
        requests_per_minute: int = 600,
        window_seconds: int = 60
    ):
        super().__init__(app)
        self.redis = redis_client
        self.limit = requests_per_minute
        self.window_seconds = window_seconds

    def _recent_hits(self, address: str) -> int:
        """
        Record one request for ``address``.

        Returns:
            How many requests the address made in the window before this one,
            or 0 when Redis is unavailable
        """
        key = f"{self.KEY_PREFIX}{address}"
        now = time.time()
        try:
            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, now - self.window_seconds)
            pipe.zcard(key)
            # Unique member so concurrent requests with equal timestamps all count
            pipe.zadd(key, {f"{now}:{uuid.uuid4().hex}": now})
            pipe.expire(key, self.window_seconds + 1)
            _, earlier, _, _ = pipe.execute()
        except redis.RedisError as e:
            logger.error("Rate limiter unavailable, allowing request", extra={"error": str(e)})
            return 0
        return earlier

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        address = client_address(request)
        if self._recent_hits(address) < self.limit:
            return await call_next(request)

        rate_limit_exceeded_counter.add(1, {"path": request.url.path})
        logger.warning("Rate limit exceeded", extra={
            "client_address": address,
            "path": request.url.path,
            "limit": self.limit
        })
        return JSONResponse(
            status_code=429,
            content={
                "error": f"Too many requests; the limit is {self.limit} per minute",
                "code": "rate_limited"
            },
            headers={"Retry-After": str(self.window_seconds)}
        )
