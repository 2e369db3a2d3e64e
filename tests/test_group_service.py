"""Unit tests for GroupService: dashboard, workspace edits and study plans."""
import base64

import pytest
from unittest.mock import AsyncMock, MagicMock

from google.api_core.exceptions import ServiceUnavailable
from pydantic import ValidationError

import studysphere.models  # noqa: F401  (configure every mapper)
from studysphere.exceptions import (
    MembershipError,
    NotFoundError,
    PersistenceError,
    PlanGenerationError,
)
from studysphere.models.group import Group as GroupRow
from studysphere.models.group import GroupMember
from studysphere.models.user import User as UserRow
from studysphere.schemas.group import GroupUpdate, StudyPlan
from studysphere.services.group_service import GroupService, dashboard_entry
from studysphere.utils.storage import decode_png_data_url

OLD_PLAN = {
    "plan": [{"day": 1, "goal": "Revise identities", "concepts": ["sin(A+B)"], "activities": ["Drill"]}]
}

NEW_PLAN = StudyPlan.model_validate(
    {
        "plan": [
            {"day": d, "goal": f"Day {d}", "concepts": ["Integration"], "activities": ["Practice set"]}
            for d in range(1, 6)
        ]
    }
)


def _group_row():
    return GroupRow(
        id=101,
        name="Maths Masters",
        subject_id=3,
        workspace_content={"scratchpad": "Integration by parts", "studyPlan": OLD_PLAN},
        members=[GroupMember(user_id=1, position=0), GroupMember(user_id=4, position=1)],
    )


@pytest.fixture
def group_row():
    return _group_row()


@pytest.fixture
def db(mock_db_session, group_row):
    known_users = {1, 2, 3, 4}

    async def _get(model, ident):
        if model is GroupRow:
            return group_row if ident == group_row.id else None
        if model is UserRow:
            return MagicMock(id=ident) if ident in known_users else None
        return None

    mock_db_session.get.side_effect = _get
    return mock_db_session


class TestDashboardEntry:
    def test_maths_masters_summary(self, demo_groups, demo_users):
        entry = dashboard_entry(demo_groups[0], demo_users)
        assert entry.subject_name == "Maths"
        assert [m.name for m in entry.members] == ["Aisha Sharma", "Vikram Singh"]
        assert entry.scratchpad_preview == demo_groups[0].workspace_content.scratchpad[:100]
        assert len(entry.scratchpad_preview) == 100

    def test_short_scratchpad_kept_whole(self, demo_groups, demo_users):
        group = demo_groups[1].model_copy(
            update={"workspace_content": demo_groups[1].workspace_content.model_copy(update={"scratchpad": "Sonnets"})}
        )
        assert dashboard_entry(group, demo_users).scratchpad_preview == "Sonnets"


class TestGeneratePlan:
    @pytest.mark.asyncio
    async def test_success_stores_plan(self, db, group_row):
        generator = AsyncMock()
        generator.generate_study_plan.return_value = NEW_PLAN
        service = GroupService(plan_generator=generator)

        group = await service.generate_plan(101, 1, db)

        generator.generate_study_plan.assert_awaited_once_with("Maths", "Integration by parts")
        assert group.workspace_content.study_plan == NEW_PLAN
        assert group_row.workspace_content["scratchpad"] == "Integration by parts"
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_leaves_previous_plan(self, db, group_row):
        generator = AsyncMock()
        generator.generate_study_plan.side_effect = PlanGenerationError("schema violation")
        service = GroupService(plan_generator=generator)

        with pytest.raises(PlanGenerationError):
            await service.generate_plan(101, 4, db)

        assert group_row.workspace_content["studyPlan"] == OLD_PLAN
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_member_cannot_generate(self, db):
        generator = AsyncMock()
        service = GroupService(plan_generator=generator)
        with pytest.raises(MembershipError):
            await service.generate_plan(101, 2, db)
        generator.generate_study_plan.assert_not_awaited()


class TestWorkspaceEdits:
    @pytest.mark.asyncio
    async def test_update_scratchpad(self, db, group_row):
        before = group_row.workspace_content
        group = await GroupService().update_scratchpad(101, 4, "Limits and continuity", db)
        assert group.workspace_content.scratchpad == "Limits and continuity"
        assert group.workspace_content.study_plan is not None
        # A fresh dict so the JSONB change is detected.
        assert group_row.workspace_content is not before

    @pytest.mark.asyncio
    async def test_scratchpad_non_member(self, db):
        with pytest.raises(MembershipError):
            await GroupService().update_scratchpad(101, 3, "hi", db)

    @pytest.mark.asyncio
    async def test_unknown_group(self, db):
        with pytest.raises(NotFoundError):
            await GroupService().update_scratchpad(999, 1, "hi", db)

    @pytest.mark.asyncio
    async def test_whiteboard_records_uri(self, db):
        uploader = MagicMock(return_value="gs://bucket/whiteboards/101/abc.png")
        service = GroupService(uploader=uploader)

        group = await service.set_whiteboard(101, 1, "data:image/png;base64,AAAA", db)

        uploader.assert_called_once_with(101, "data:image/png;base64,AAAA")
        assert group.workspace_content.whiteboard == "gs://bucket/whiteboards/101/abc.png"

    @pytest.mark.asyncio
    async def test_whiteboard_storage_failure(self, db):
        uploader = MagicMock(side_effect=ServiceUnavailable("gcs down"))
        with pytest.raises(PersistenceError):
            await GroupService(uploader=uploader).set_whiteboard(101, 1, "data:image/png;base64,AAAA", db)
        db.commit.assert_not_awaited()


class TestUpdateGroup:
    @pytest.mark.asyncio
    async def test_merge_only_supplied_fields(self, db):
        group = await GroupService().update_group(101, 1, GroupUpdate(name="Calculus Crew"), db)
        assert group.name == "Calculus Crew"
        assert group.subject_id == 3
        assert group.members == [1, 4]

    @pytest.mark.asyncio
    async def test_members_replaced_in_order(self, db):
        group = await GroupService().update_group(101, 1, GroupUpdate(members=[4, 2, 1]), db)
        assert group.members == [4, 2, 1]

    @pytest.mark.asyncio
    async def test_unknown_subject(self, db):
        with pytest.raises(NotFoundError):
            await GroupService().update_group(101, 1, GroupUpdate(subject_id=42), db)

    @pytest.mark.asyncio
    async def test_unknown_member(self, db):
        with pytest.raises(NotFoundError):
            await GroupService().update_group(101, 1, GroupUpdate(members=[1, 77]), db)


class TestDecodePngDataUrl:
    def test_decodes(self):
        raw = b"\x89PNG\r\n\x1a\n"
        url = "data:image/png;base64," + base64.b64encode(raw).decode()
        assert decode_png_data_url(url) == raw

    def test_rejects_other_media_types(self):
        with pytest.raises(ValueError):
            decode_png_data_url("data:image/jpeg;base64,AAAA")

    def test_rejects_bad_base64(self):
        with pytest.raises(ValueError):
            decode_png_data_url("data:image/png;base64,@@@")


class TestGroupUpdateAccess:
    """Merge updates act on behalf of a member and only touch the scratchpad."""

    @pytest.mark.asyncio
    async def test_non_member_cannot_update(self, db, group_row):
        payload = GroupUpdate.model_validate({"workspaceContent": {"scratchpad": "wiped"}})
        with pytest.raises(MembershipError):
            await GroupService().update_group(101, 3, payload, db)
        assert group_row.workspace_content["scratchpad"] == "Integration by parts"
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_member_merges_scratchpad(self, db, group_row):
        payload = GroupUpdate.model_validate({"workspaceContent": {"scratchpad": "Limits"}})
        group = await GroupService().update_group(101, 4, payload, db)
        assert group.workspace_content.scratchpad == "Limits"
        assert group_row.workspace_content["studyPlan"] == OLD_PLAN

    @pytest.mark.parametrize(
        "workspace",
        [
            {"whiteboard": "not-a-uri"},
            {"studyPlan": OLD_PLAN},
        ],
    )
    def test_whiteboard_and_plan_are_not_directly_writable(self, workspace):
        with pytest.raises(ValidationError):
            GroupUpdate.model_validate({"workspaceContent": workspace})
