"""
StudySphere — Anonymous session gateway.

A session is a Fernet token carrying ``{sid, uid}``.  The token alone proves
integrity; the session id must also still be present in Redis, so signing out
(or the Redis TTL lapsing) revokes the token even before Fernet's own TTL
check would reject it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from cryptography.fernet import Fernet, InvalidToken
from redis.exceptions import RedisError

from studysphere.config import get_settings
from studysphere.exceptions import SessionError
from studysphere.schemas.auth import SessionResponse
from studysphere.utils.encryption import decrypt_payload, encrypt_payload, get_fernet

logger = structlog.get_logger("studysphere.session_service")


def session_key(session_id: str) -> str:
    return f"studysphere:session:{session_id}"


class SessionService:
    def __init__(self, redis_client: Any, fernet: Fernet | None = None) -> None:
        self._redis = redis_client
        self._fernet = fernet or get_fernet()
        self._ttl: int = get_settings().SESSION_TTL_SECONDS

    async def issue(self, user_id: int) -> SessionResponse:
        """Start an anonymous session acting as ``user_id``."""
        session_id = uuid.uuid4().hex
        token = encrypt_payload({"sid": session_id, "uid": user_id}, self._fernet)

        try:
            await self._redis.setex(session_key(session_id), self._ttl, str(user_id))
        except RedisError as exc:
            logger.error("session_store_failed", user_id=user_id, error=str(exc))
            raise SessionError("Session store unavailable") from exc

        logger.info("session_issued", user_id=user_id, session_id=session_id)
        return SessionResponse(
            token=token,
            session_id=session_id,
            user_id=user_id,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=self._ttl),
        )

    async def verify(self, token: str) -> tuple[str, int]:
        """Return ``(session_id, user_id)`` for a live token.

        Raises
        ------
        SessionError
            The token is malformed, forged, expired or revoked.
        """
        try:
            payload = decrypt_payload(token, self._fernet, ttl=self._ttl)
            session_id = str(payload["sid"])
            user_id = int(payload["uid"])
        except (InvalidToken, KeyError, TypeError, ValueError) as exc:
            logger.info("session_token_rejected", error=type(exc).__name__)
            raise SessionError("Invalid session token") from exc

        try:
            stored = await self._redis.get(session_key(session_id))
        except RedisError as exc:
            logger.error("session_lookup_failed", session_id=session_id, error=str(exc))
            raise SessionError("Session store unavailable") from exc

        if stored is None or int(stored) != user_id:
            logger.info("session_revoked_or_expired", session_id=session_id)
            raise SessionError("Session has expired or was signed out")

        return session_id, user_id

    async def revoke(self, token: str) -> None:
        """Sign out: delete the session so the token stops verifying."""
        session_id, user_id = await self.verify(token)
        try:
            await self._redis.delete(session_key(session_id))
        except RedisError as exc:
            logger.error("session_revoke_failed", session_id=session_id, error=str(exc))
            raise SessionError("Session store unavailable") from exc
        logger.info("session_revoked", session_id=session_id, user_id=user_id)
