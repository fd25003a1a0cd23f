"""Redis client for state shared by every worker.

Learn: Anything that has to agree across uvicorn workers (right now, the
rate-limit counters) lives in Redis rather than in process memory.
from_url() only builds a connection pool; nothing connects until the
first command, so building the client never fails. The lifespan pings
it once at startup and logs whether Redis answered.
"""

from typing import Optional

import redis.asyncio as aioredis

from chatgate.config import settings


def build_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Create a Redis client for ``url`` (defaults to CHATGATE_REDIS_URL)."""
    return aioredis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
