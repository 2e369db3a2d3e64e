"""
StudySphere — Groups API

Group reads, the member dashboard, and the shared workspace: scratchpad,
whiteboard snapshots and AI-generated study plans.  Every write acts as the
user of the session token and requires group membership.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studysphere.api.deps import (
    get_group_service,
    get_profile_service,
    get_session_user_id,
    http_error,
)
from studysphere.database import get_db
from studysphere.exceptions import StudySphereError
from studysphere.schemas.group import (
    DashboardGroup,
    Group,
    GroupUpdate,
    ScratchpadUpdate,
    WhiteboardUpload,
)
from studysphere.services.group_service import GroupService
from studysphere.services.profile_service import ProfileService

logger = structlog.get_logger("studysphere.api.groups")

router = APIRouter()


@router.get("", response_model=list[Group], summary="List all groups")
async def list_groups(
    db: AsyncSession = Depends(get_db),
    groups: GroupService = Depends(get_group_service),
) -> list[Group]:
    return await groups.get_groups(db)


@router.get(
    "/user/{user_id}",
    response_model=list[DashboardGroup],
    summary="Dashboard: the groups a user belongs to",
)
async def user_dashboard(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    groups: GroupService = Depends(get_group_service),
    profiles: ProfileService = Depends(get_profile_service),
) -> list[DashboardGroup]:
    try:
        await profiles.get_user(user_id, db)
        roster = await profiles.load_roster(db)
        return await groups.groups_for_user(user_id, roster, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc


@router.get("/{group_id}", response_model=Group, summary="Get a single group")
async def get_group(
    group_id: int,
    db: AsyncSession = Depends(get_db),
    groups: GroupService = Depends(get_group_service),
) -> Group:
    try:
        return await groups.get_group(group_id, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc


@router.put("/{group_id}", response_model=Group, summary="Merge-update a group")
async def update_group(
    group_id: int,
    payload: GroupUpdate,
    user_id: int = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db),
    groups: GroupService = Depends(get_group_service),
) -> Group:
    try:
        return await groups.update_group(group_id, user_id, payload, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc


# ──────────────────────────────────────────────────────────────────────────────
# Workspace
# ──────────────────────────────────────────────────────────────────────────────

@router.put("/{group_id}/scratchpad", response_model=Group, summary="Save the shared scratchpad")
async def save_scratchpad(
    group_id: int,
    payload: ScratchpadUpdate,
    user_id: int = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db),
    groups: GroupService = Depends(get_group_service),
) -> Group:
    try:
        return await groups.update_scratchpad(group_id, user_id, payload.scratchpad, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc


@router.post(
    "/{group_id}/whiteboard",
    response_model=Group,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a whiteboard snapshot",
)
async def upload_whiteboard(
    group_id: int,
    payload: WhiteboardUpload,
    user_id: int = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db),
    groups: GroupService = Depends(get_group_service),
) -> Group:
    """Store a PNG canvas export (``data:image/png;base64,...``) in Cloud
    Storage and record its URI on the workspace."""
    try:
        return await groups.set_whiteboard(group_id, user_id, payload.data_url, db)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    except StudySphereError as exc:
        raise http_error(exc) from exc


@router.post(
    "/{group_id}/study-plan",
    response_model=Group,
    summary="Generate a study plan from the scratchpad",
)
async def generate_study_plan(
    group_id: int,
    user_id: int = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db),
    groups: GroupService = Depends(get_group_service),
) -> Group:
    """Ask Gemini for a five-day plan covering the group's subject and the
    topics in its scratchpad.

    On a generation failure the response is 502 and the stored plan is left
    as it was.
    """
    try:
        return await groups.generate_plan(group_id, user_id, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc
