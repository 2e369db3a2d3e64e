"""
StudySphere — Shared API dependencies.

Service factories used with ``Depends`` and the translation of domain
exceptions into HTTP errors.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, Header, HTTPException, status

from studysphere.exceptions import (
    ConflictError,
    ForbiddenError,
    MessageValidationError,
    NotFoundError,
    PersistenceError,
    PlanGenerationError,
    SessionError,
    StudySphereError,
)
from studysphere.redis_client import get_redis
from studysphere.services.gemini_service import StudyPlanGenerator
from studysphere.services.group_service import GroupService
from studysphere.services.matching_service import MatchingService
from studysphere.services.messaging_service import MessagingService
from studysphere.services.profile_service import ProfileService
from studysphere.services.session_service import SessionService
from studysphere.utils.cache import MatchCache

logger = structlog.get_logger("studysphere.api.deps")

_STATUS_BY_ERROR: dict[type[StudySphereError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    MessageValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_409_CONFLICT,
    PlanGenerationError: status.HTTP_502_BAD_GATEWAY,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
    SessionError: status.HTTP_401_UNAUTHORIZED,
}


def http_error(exc: StudySphereError) -> HTTPException:
    """Map a domain exception onto the ``HTTPException`` routes raise."""
    for error_type, code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=code, detail=str(exc))
    logger.error("unmapped_domain_error", error_type=type(exc).__name__)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


# ── Service factories ─────────────────────────────────────────────────────────

_plan_generator: StudyPlanGenerator | None = None


def _match_cache() -> MatchCache | None:
    redis_client = get_redis()
    return MatchCache(redis_client) if redis_client is not None else None


def get_profile_service() -> ProfileService:
    return ProfileService(cache=_match_cache())


def get_matching_service() -> MatchingService:
    cache = _match_cache()
    return MatchingService(profile_service=ProfileService(cache=cache), cache=cache)


def get_plan_generator() -> StudyPlanGenerator:
    global _plan_generator
    if _plan_generator is None:
        _plan_generator = StudyPlanGenerator()
    return _plan_generator


def get_group_service() -> GroupService:
    return GroupService(plan_generator=get_plan_generator())


def get_messaging_service() -> MessagingService:
    return MessagingService()


def get_session_service() -> SessionService:
    redis_client = get_redis()
    if redis_client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session store is not available.",
        )
    return SessionService(redis_client)


# ── Acting user ───────────────────────────────────────────────────────────────

def bearer_token(authorization: str) -> str:
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise SessionError("Expected an 'Authorization: Bearer <token>' header")
    return token.strip()


async def get_session_user_id(
    authorization: str = Header(..., description="Bearer session token"),
    sessions: SessionService = Depends(get_session_service),
) -> int:
    """The user id carried by a live anonymous session token."""
    try:
        _, user_id = await sessions.verify(bearer_token(authorization))
    except SessionError as exc:
        raise http_error(exc) from exc
    return user_id


async def require_profile_owner(
    user_id: int,
    session_user_id: int = Depends(get_session_user_id),
) -> int:
    """Only the signed-in user may edit their own profile."""
    if session_user_id != user_id:
        logger.warning("profile_edit_forbidden", user_id=user_id, session_user_id=session_user_id)
        raise http_error(ForbiddenError(f"Signed in as user {session_user_id}, not user {user_id}."))
    return user_id
