"""
StudySphere — Group Store and shared workspaces.

Groups own a JSONB ``workspace_content`` document with three keys:

  scratchpad  — shared free-text notes
  whiteboard  — ``gs://`` URI of the latest canvas snapshot
  studyPlan   — the last successfully generated ``StudyPlan``

Workspace edits are restricted to group members.  A study plan is written
only after the generator returns a valid plan, so a failed generation leaves
the previous plan in place.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable

import structlog
from google.api_core.exceptions import GoogleAPIError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studysphere.catalog import subject_exists, subject_name
from studysphere.exceptions import (
    MembershipError,
    NotFoundError,
    PersistenceError,
    PlanGenerationError,
)
from studysphere.models.group import Group as GroupRow
from studysphere.models.group import GroupMember
from studysphere.models.user import User as UserRow
from studysphere.schemas.group import (
    DashboardGroup,
    Group,
    GroupMemberSummary,
    GroupUpdate,
    StudyPlan,
    WorkspaceContent,
)
from studysphere.schemas.user import User
from studysphere.utils.storage import upload_whiteboard_snapshot

logger = structlog.get_logger("studysphere.group_service")

SCRATCHPAD_PREVIEW_CHARS = 100


def group_from_row(row: GroupRow) -> Group:
    return Group(
        id=row.id,
        name=row.name,
        subject_id=row.subject_id,
        members=row.member_ids,
        workspace_content=WorkspaceContent.model_validate(row.workspace_content or {}),
    )


def dashboard_entry(group: Group, roster: Iterable[User]) -> DashboardGroup:
    """Summarise ``group`` for a member's dashboard.

    Members missing from ``roster`` are left out of the member list.
    """
    users = {u.id: u for u in roster}
    members = [
        GroupMemberSummary(id=u.id, name=u.name, avatar_url=u.avatar_url)
        for u in (users.get(member_id) for member_id in group.members)
        if u is not None
    ]
    return DashboardGroup(
        id=group.id,
        name=group.name,
        subject_id=group.subject_id,
        subject_name=subject_name(group.subject_id),
        members=members,
        scratchpad_preview=group.workspace_content.scratchpad[:SCRATCHPAD_PREVIEW_CHARS],
    )


class GroupService:
    """Group Store backed by the ``groups`` / ``group_members`` tables.

    ``uploader`` stores a whiteboard data URL and returns its URI; it is a
    blocking call and runs in a worker thread.
    """

    def __init__(
        self,
        plan_generator: Any | None = None,
        uploader: Callable[[int, str], str] = upload_whiteboard_snapshot,
    ) -> None:
        self.plan_generator = plan_generator
        self.uploader = uploader

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_groups(self, db_session: AsyncSession) -> list[Group]:
        result = await db_session.execute(select(GroupRow).order_by(GroupRow.id))
        return [group_from_row(row) for row in result.scalars().all()]

    async def get_group(self, group_id: int, db_session: AsyncSession) -> Group:
        return group_from_row(await self._get_row(group_id, db_session))

    async def groups_for_user(
        self,
        user_id: int,
        roster: Iterable[User],
        db_session: AsyncSession,
    ) -> list[DashboardGroup]:
        """Dashboard entries for every group ``user_id`` belongs to."""
        stmt = (
            select(GroupRow)
            .join(GroupMember, GroupMember.group_id == GroupRow.id)
            .where(GroupMember.user_id == user_id)
            .order_by(GroupRow.id)
        )
        result = await db_session.execute(stmt)
        roster = tuple(roster)
        groups = [dashboard_entry(group_from_row(row), roster) for row in result.scalars().all()]
        logger.debug("dashboard_loaded", user_id=user_id, group_count=len(groups))
        return groups

    # ── Writes ────────────────────────────────────────────────────────────

    async def upsert_group(self, group: Group, db_session: AsyncSession) -> Group:
        """Insert ``group`` or overwrite the stored one with the same id."""
        log = logger.bind(group_id=group.id)
        await self._validate_refs(group.subject_id, group.members, db_session)

        row = await db_session.get(GroupRow, group.id)
        if row is None:
            row = GroupRow(id=group.id, members=[], workspace_content={})
            db_session.add(row)
            log.info("upsert_group_insert")

        row.name = group.name
        row.subject_id = group.subject_id
        row.workspace_content = group.workspace_content.model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
        self._sync_members(row, group.members)
        return await self._commit(row, db_session, log)

    async def update_group(
        self,
        group_id: int,
        user_id: int,
        payload: GroupUpdate,
        db_session: AsyncSession,
    ) -> Group:
        """Merge the fields present in ``payload`` into the stored group on
        behalf of member ``user_id``.

        Raises
        ------
        NotFoundError
            Unknown group, subject or member.
        MembershipError
            ``user_id`` is not a member of the group.
        PersistenceError
            The write could not be committed.
        """
        log = logger.bind(group_id=group_id, user_id=user_id)
        row = await self._get_member_row(group_id, user_id, db_session)

        await self._validate_refs(payload.subject_id, payload.members, db_session)

        if payload.name is not None:
            row.name = payload.name
        if payload.subject_id is not None:
            row.subject_id = payload.subject_id
        if payload.members is not None:
            self._sync_members(row, payload.members)
        if payload.workspace_content is not None:
            changes = payload.workspace_content.model_dump(
                mode="json", by_alias=True, exclude_unset=True, exclude_none=True
            )
            self._merge_workspace(row, changes)

        log.info("update_group", fields=sorted(payload.model_fields_set))
        return await self._commit(row, db_session, log)

    async def update_scratchpad(
        self,
        group_id: int,
        user_id: int,
        scratchpad: str,
        db_session: AsyncSession,
    ) -> Group:
        log = logger.bind(group_id=group_id, user_id=user_id)
        row = await self._get_member_row(group_id, user_id, db_session)
        self._merge_workspace(row, {"scratchpad": scratchpad})
        log.info("scratchpad_updated", length=len(scratchpad))
        return await self._commit(row, db_session, log)

    async def set_whiteboard(
        self,
        group_id: int,
        user_id: int,
        data_url: str,
        db_session: AsyncSession,
    ) -> Group:
        """Upload a whiteboard PNG snapshot and record its URI.

        Raises ``ValueError`` for a payload that is not a PNG data URL and
        ``PersistenceError`` if object storage rejects the upload.
        """
        log = logger.bind(group_id=group_id, user_id=user_id)
        row = await self._get_member_row(group_id, user_id, db_session)

        try:
            uri = await asyncio.to_thread(self.uploader, group_id, data_url)
        except GoogleAPIError as exc:
            log.error("whiteboard_upload_failed", error=str(exc))
            raise PersistenceError(f"Could not store whiteboard for group {group_id}") from exc

        self._merge_workspace(row, {"whiteboard": uri})
        return await self._commit(row, db_session, log)

    async def generate_plan(
        self,
        group_id: int,
        user_id: int,
        db_session: AsyncSession,
    ) -> Group:
        """Generate a study plan from the group's subject and scratchpad.

        Raises
        ------
        PlanGenerationError
            The generator failed; the stored plan is unchanged.
        """
        log = logger.bind(group_id=group_id, user_id=user_id)
        row = await self._get_member_row(group_id, user_id, db_session)
        workspace = WorkspaceContent.model_validate(row.workspace_content or {})

        try:
            plan: StudyPlan = await self.plan_generator.generate_study_plan(
                subject_name(row.subject_id), workspace.scratchpad
            )
        except PlanGenerationError:
            log.warning("study_plan_not_stored")
            raise

        self._merge_workspace(
            row, {"studyPlan": plan.model_dump(mode="json", by_alias=True)}
        )
        log.info("study_plan_stored", days=len(plan.plan))
        return await self._commit(row, db_session, log)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _get_row(self, group_id: int, db_session: AsyncSession) -> GroupRow:
        row = await db_session.get(GroupRow, group_id)
        if row is None:
            logger.warning("group_not_found", group_id=group_id)
            raise NotFoundError("Group", group_id)
        return row

    async def _get_member_row(
        self, group_id: int, user_id: int, db_session: AsyncSession
    ) -> GroupRow:
        row = await self._get_row(group_id, db_session)
        if user_id not in row.member_ids:
            logger.warning("workspace_edit_forbidden", group_id=group_id, user_id=user_id)
            raise MembershipError(f"User {user_id} is not a member of group {group_id}.")
        return row

    @staticmethod
    async def _validate_refs(
        subject_id: int | None,
        members: list[int] | None,
        db_session: AsyncSession,
    ) -> None:
        if subject_id is not None and not subject_exists(subject_id):
            raise NotFoundError("Subject", subject_id)
        for member_id in members or ():
            if await db_session.get(UserRow, member_id) is None:
                raise NotFoundError("User", member_id)

    @staticmethod
    def _sync_members(row: GroupRow, member_ids: list[int]) -> None:
        existing = {m.user_id: m for m in row.members}
        synced: list[GroupMember] = []
        for position, member_id in enumerate(dict.fromkeys(member_ids)):
            member = existing.get(member_id) or GroupMember(user_id=member_id)
            member.position = position
            synced.append(member)
        row.members = synced

    @staticmethod
    def _merge_workspace(row: GroupRow, changes: dict) -> None:
        # Reassign a new dict so the JSONB column is flagged dirty.
        row.workspace_content = {**(row.workspace_content or {}), **changes}

    async def _commit(self, row: GroupRow, db_session: AsyncSession, log) -> Group:
        try:
            await db_session.commit()
        except SQLAlchemyError as exc:
            await db_session.rollback()
            log.error("group_write_failed", error=str(exc))
            raise PersistenceError(f"Could not save group {row.id}") from exc
        return group_from_row(row)
