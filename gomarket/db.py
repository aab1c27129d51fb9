"""
Redis client for the cart's redis storage backend.

Provides a singleton async Upstash Redis client.
"""

from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis

from gomarket import config


_redis_client: Optional[AsyncRedis] = None


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        if not config.UPSTASH_REDIS_REST_URL or not config.UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(
            url=config.UPSTASH_REDIS_REST_URL,
            token=config.UPSTASH_REDIS_REST_TOKEN,
        )

    return _redis_client


async def close_redis() -> None:
    """Close the singleton client if one was created."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None
