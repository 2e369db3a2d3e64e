"""
StudySphere — Shared async Redis client.

Opened and closed by the FastAPI lifespan in ``studysphere.main``; routes and
services read it through ``get_redis()``.
"""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog

from studysphere.config import get_settings

logger = structlog.get_logger("studysphere.redis")

_redis_client: aioredis.Redis | None = None


async def connect_redis() -> None:
    global _redis_client

    settings = get_settings()
    _redis_client = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=5,
    )
    await _redis_client.ping()
    logger.info("redis_connected")


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("redis_closed")


def get_redis() -> aioredis.Redis | None:
    """Return the shared Redis client, or ``None`` before startup."""
    return _redis_client
