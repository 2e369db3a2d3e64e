"""
StudySphere — Anonymous session API
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from studysphere.api.deps import (
    bearer_token,
    get_profile_service,
    get_session_service,
    http_error,
)
from studysphere.database import get_db
from studysphere.exceptions import StudySphereError
from studysphere.schemas.auth import AnonymousSessionRequest, SessionResponse
from studysphere.services.profile_service import ProfileService
from studysphere.services.session_service import SessionService

logger = structlog.get_logger("studysphere.api.auth")

router = APIRouter()


@router.post(
    "/anonymous",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign in anonymously as a demo user",
)
async def sign_in_anonymously(
    payload: AnonymousSessionRequest,
    db: AsyncSession = Depends(get_db),
    profiles: ProfileService = Depends(get_profile_service),
    sessions: SessionService = Depends(get_session_service),
) -> SessionResponse:
    try:
        await profiles.get_user(payload.user_id, db)
        return await sessions.issue(payload.user_id)
    except StudySphereError as exc:
        raise http_error(exc) from exc


@router.delete(
    "/session",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out",
)
async def sign_out(
    authorization: str = Header(..., description="Bearer session token"),
    sessions: SessionService = Depends(get_session_service),
) -> None:
    try:
        await sessions.revoke(bearer_token(authorization))
    except StudySphereError as exc:
        raise http_error(exc) from exc
