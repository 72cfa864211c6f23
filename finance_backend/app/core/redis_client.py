"""
Redis client initialization and connection management.

Redis backs the JWT revocation list used by logout.
"""

import redis.asyncio as redis
from finance_backend.app.core.config import settings


# Create async Redis client (connects lazily on first command)
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.

    Resolved at call time so tests can swap the module-level client.
    """
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        client = await get_redis()
        return await client.ping()
    except Exception:
        return False
