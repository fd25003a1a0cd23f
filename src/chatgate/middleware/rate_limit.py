"""Rate limiting middleware — Redis fixed window per IP.

Learn: Each client IP gets a counter per minute window, in one of two
buckets: "auth" for login/register (stricter, slows password guessing)
and "api" for everything else. Keys look like
"chatgate:rl:{ip}:{bucket}:{minute}" and live in Redis, so every worker
counts against the same limit.

If Redis is missing or unreachable the request goes through unlimited.
"""

import time

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from chatgate.errors import RateLimitedError, error_response

logger = structlog.get_logger()

AUTH_PATHS = frozenset({"/auth/login", "/auth/register"})
KEY_TTL_SECONDS = 120


def rate_limit_key(client_ip: str, bucket: str, window: int) -> str:
    return f"chatgate:rl:{client_ip}:{bucket}:{window}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window rate limiting per IP per minute, counted in Redis."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10, enabled: bool = True):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next) -> Response:
        redis = getattr(request.app.state, "redis", None)
        if not self.enabled or redis is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = request.url.path in AUTH_PATHS
        rpm = self.auth_rpm if is_auth else self.default_rpm
        window = int(time.time() // 60)
        key = rate_limit_key(client_ip, "auth" if is_auth else "api", window)

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, KEY_TTL_SECONDS)
        except (RedisError, OSError) as e:
            logger.warning("rate_limit.redis_unavailable", error=str(e))
            return await call_next(request)

        if count > rpm:
            response = error_response(RateLimitedError())
            response.headers["Retry-After"] = "60"
            return response

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
