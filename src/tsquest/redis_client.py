"""Redis client used for rate limiting and the readiness probe.

Redis is optional at runtime: when it is not configured or unreachable the
API keeps serving, rate limiting is skipped and ``/ready`` reports degraded.
"""

from __future__ import annotations

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger()

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> None:
    """Create the Redis client. Does not fail if the server is down."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    """Close the Redis client, if any."""
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Get the Redis client.

    Raises:
        RuntimeError: If ``init_redis`` was never called.
    """
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client


async def ping_redis() -> bool:
    """Return True when Redis answers a PING."""
    if _client is None:
        return False
    try:
        return bool(await _client.ping())
    except RedisError as e:
        logger.warning("redis_ping_failed", error=str(e))
        return False
