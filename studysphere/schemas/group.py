from __future__ import annotations

from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from studysphere.schemas.common import CamelModel


class StudyPlanDay(CamelModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    day: int = Field(ge=1, le=5)
    goal: str = Field(min_length=1)
    concepts: list[str] = Field(min_length=1)
    activities: list[str] = Field(min_length=1)


class StudyPlan(CamelModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    plan: list[StudyPlanDay] = Field(min_length=1, max_length=5)

    @field_validator("plan")
    @classmethod
    def _days_are_unique(cls, v: list[StudyPlanDay]) -> list[StudyPlanDay]:
        days = [d.day for d in v]
        if len(days) != len(set(days)):
            raise ValueError("Each plan day may appear only once")
        return v


class WorkspaceContent(CamelModel):
    scratchpad: str = ""
    whiteboard: Optional[str] = None
    study_plan: Optional[StudyPlan] = None


class Group(CamelModel):
    id: int
    name: str
    subject_id: int
    members: list[int] = Field(min_length=1)
    workspace_content: WorkspaceContent = Field(default_factory=WorkspaceContent)


class WorkspaceUpdate(CamelModel):
    """Workspace fields a member may merge directly.

    The whiteboard URI and study plan are only written by their own routes
    (storage upload and plan generation), so they are rejected here.
    """

    model_config = ConfigDict(extra="forbid")

    scratchpad: Optional[str] = None


class GroupUpdate(CamelModel):
    """Merge-style group update; absent fields are left untouched."""

    name: Optional[str] = None
    subject_id: Optional[int] = None
    members: Optional[list[int]] = Field(None, min_length=1)
    workspace_content: Optional[WorkspaceUpdate] = None


class ScratchpadUpdate(CamelModel):
    scratchpad: str


class WhiteboardUpload(CamelModel):
    data_url: str = Field(description="PNG canvas snapshot as a data: URL")


class GroupMemberSummary(CamelModel):
    id: int
    name: str
    avatar_url: str


class DashboardGroup(CamelModel):
    id: int
    name: str
    subject_id: int
    subject_name: str
    members: list[GroupMemberSummary]
    scratchpad_preview: str
