from __future__ import annotations

from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from studysphere.catalog import ALL_AVAILABILITY
from studysphere.schemas.common import CamelModel, LearningStyle, StudyMethod, SubjectRole


def _dedupe(values):
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return tuple(seen)


def _check_one_role_per_subject(interests):
    subject_ids = [interest.subject_id for interest in interests]
    if len(subject_ids) != len(set(subject_ids)):
        raise ValueError("A user may hold only one role per subject")
    return interests


class UserSubjectInterest(CamelModel):
    model_config = ConfigDict(frozen=True)

    subject_id: int
    role: SubjectRole


class Profile(CamelModel):
    """A user's study profile.

    ``preferred_methods`` and ``availability`` behave as sets (duplicates are
    dropped, first occurrence wins) but keep their order for display.
    ``subjects`` holds at most one interest per subject id.
    """

    model_config = ConfigDict(frozen=True)

    bio: str = ""
    learning_style: LearningStyle = LearningStyle.VISUAL
    preferred_methods: tuple[StudyMethod, ...] = ()
    availability: tuple[str, ...] = ()
    subjects: tuple[UserSubjectInterest, ...] = ()

    @field_validator("preferred_methods", "availability")
    @classmethod
    def _drop_duplicates(cls, v: tuple) -> tuple:
        return _dedupe(v)

    @field_validator("subjects")
    @classmethod
    def _one_interest_per_subject(cls, v):
        return _check_one_role_per_subject(v)

    def subject_ids_with_role(self, role: SubjectRole) -> set[int]:
        return {s.subject_id for s in self.subjects if s.role == role}


class User(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    avatar_url: str = ""
    profile: Profile = Field(default_factory=Profile)


class ProfileUpdate(CamelModel):
    """Partial profile; only fields present in the request are applied."""

    bio: Optional[str] = None
    learning_style: Optional[LearningStyle] = None
    preferred_methods: Optional[list[StudyMethod]] = None
    availability: Optional[list[str]] = None
    subjects: Optional[list[UserSubjectInterest]] = None

    @field_validator("subjects")
    @classmethod
    def _one_interest_per_subject(cls, v):
        return _check_one_role_per_subject(v) if v is not None else v


class UserUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    profile: Optional[ProfileUpdate] = None

    @field_validator("name", "email", "avatar_url")
    @classmethod
    def _omit_rather_than_null(cls, v: Optional[str]) -> str:
        # Only runs for fields present in the body.
        if v is None:
            raise ValueError("Field may be omitted but not set to null")
        return v


class InterestToggle(CamelModel):
    subject_id: int
    role: SubjectRole


class AvailabilityToggle(CamelModel):
    slot: str

    @field_validator("slot")
    @classmethod
    def _known_slot(cls, v: str) -> str:
        if v not in ALL_AVAILABILITY:
            raise ValueError(f"Unknown availability slot {v!r}")
        return v


class StudyMethodToggle(CamelModel):
    method: StudyMethod
