"""
StudySphere — Users API

Roster reads, profile merge updates and the one-click profile toggles used by
the profile editor.  Writes need the owner's session token.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studysphere.api.deps import get_profile_service, http_error, require_profile_owner
from studysphere.database import get_db
from studysphere.exceptions import StudySphereError
from studysphere.schemas.user import (
    AvailabilityToggle,
    InterestToggle,
    StudyMethodToggle,
    User,
    UserUpdate,
)
from studysphere.services.profile_service import ProfileService

logger = structlog.get_logger("studysphere.api.users")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET / — Roster snapshot
# ──────────────────────────────────────────────────────────────────────────────

@router.get("", response_model=list[User], summary="List all users")
async def list_users(
    db: AsyncSession = Depends(get_db),
    profiles: ProfileService = Depends(get_profile_service),
) -> list[User]:
    return list(await profiles.load_roster(db))


@router.get("/{user_id}", response_model=User, summary="Get a single user")
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    profiles: ProfileService = Depends(get_profile_service),
) -> User:
    try:
        return await profiles.get_user(user_id, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc


# ──────────────────────────────────────────────────────────────────────────────
# PUT /{user_id} — Merge update
# ──────────────────────────────────────────────────────────────────────────────

@router.put(
    "/{user_id}",
    response_model=User,
    summary="Update a user's profile",
    dependencies=[Depends(require_profile_owner)],
)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
    profiles: ProfileService = Depends(get_profile_service),
) -> User:
    """Apply only the fields present in the request body.

    Replacing ``profile.subjects`` swaps the whole interest list; use the
    toggle endpoint for single-subject edits.
    """
    try:
        return await profiles.update_user(user_id, payload, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc


# ──────────────────────────────────────────────────────────────────────────────
# POST /{user_id}/... — Profile editor toggles
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{user_id}/subjects/toggle",
    response_model=User,
    summary="Add, switch or remove a subject interest",
    dependencies=[Depends(require_profile_owner)],
)
async def toggle_subject(
    user_id: int,
    payload: InterestToggle,
    db: AsyncSession = Depends(get_db),
    profiles: ProfileService = Depends(get_profile_service),
) -> User:
    """Picking a role the user already holds for the subject removes it;
    picking the other role switches it in place."""
    try:
        return await profiles.toggle_interest(user_id, payload.subject_id, payload.role, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc


@router.post(
    "/{user_id}/availability/toggle",
    response_model=User,
    summary="Toggle an availability slot",
    dependencies=[Depends(require_profile_owner)],
)
async def toggle_availability(
    user_id: int,
    payload: AvailabilityToggle,
    db: AsyncSession = Depends(get_db),
    profiles: ProfileService = Depends(get_profile_service),
) -> User:
    try:
        return await profiles.toggle_availability(user_id, payload.slot, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc


@router.post(
    "/{user_id}/methods/toggle",
    response_model=User,
    summary="Toggle a preferred study method",
    dependencies=[Depends(require_profile_owner)],
)
async def toggle_method(
    user_id: int,
    payload: StudyMethodToggle,
    db: AsyncSession = Depends(get_db),
    profiles: ProfileService = Depends(get_profile_service),
) -> User:
    try:
        return await profiles.toggle_study_method(user_id, payload.method, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc
