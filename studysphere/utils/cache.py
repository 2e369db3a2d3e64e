"""
StudySphere — Redis-backed partner ranking cache.

Rankings are memoised per (requester, roster version, filter set).  Every
profile write bumps the roster version, so entries computed against an older
roster are simply never read again and age out through their TTL.

The cache is an optimisation only: any Redis failure is logged and reported
as a miss so callers fall back to recomputing.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from redis.exceptions import RedisError

from studysphere.config import get_settings

logger = structlog.get_logger("studysphere.cache")

_KEY_PREFIX = "studysphere"


def _key(namespace: str, key: str) -> str:
    return f"{_KEY_PREFIX}:{namespace}:{key}"


ROSTER_VERSION_KEY = _key("roster", "version")


class MatchCache:
    def __init__(self, redis_client: Any, ttl_seconds: int | None = None) -> None:
        self._redis = redis_client
        self._ttl = ttl_seconds or get_settings().MATCH_CACHE_TTL_SECONDS

    @staticmethod
    def ranking_key(requester_id: int, roster_version: int, filter_token: str) -> str:
        return _key("partners", f"{requester_id}:{roster_version}:{filter_token}")

    async def roster_version(self) -> int:
        try:
            raw = await self._redis.get(ROSTER_VERSION_KEY)
        except RedisError as exc:
            logger.warning("roster_version_read_failed", error=str(exc))
            return 0
        try:
            return int(raw) if raw else 0
        except ValueError:
            logger.warning("roster_version_corrupt", raw=raw)
            return 0

    async def bump_roster_version(self) -> int | None:
        """Invalidate every cached ranking by advancing the roster version."""
        try:
            version = await self._redis.incr(ROSTER_VERSION_KEY)
        except RedisError as exc:
            logger.warning("roster_version_bump_failed", error=str(exc))
            return None
        logger.debug("roster_version_bumped", version=version)
        return int(version)

    async def get_ranking(
        self,
        requester_id: int,
        roster_version: int,
        filter_token: str,
    ) -> list[dict] | None:
        key = self.ranking_key(requester_id, roster_version, filter_token)
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            logger.warning("ranking_cache_read_failed", key=key, error=str(exc))
            return None
        if not raw:
            return None
        try:
            ranking = json.loads(raw)
        except ValueError as exc:
            logger.warning("ranking_cache_entry_corrupt", key=key, error=str(exc))
            return None
        if not isinstance(ranking, list):
            logger.warning("ranking_cache_entry_corrupt", key=key, error="not a list")
            return None
        return ranking

    async def set_ranking(
        self,
        requester_id: int,
        roster_version: int,
        filter_token: str,
        ranking: list[dict],
    ) -> None:
        key = self.ranking_key(requester_id, roster_version, filter_token)
        try:
            await self._redis.setex(key, self._ttl, json.dumps(ranking))
        except RedisError as exc:
            logger.warning("ranking_cache_write_failed", key=key, error=str(exc))
