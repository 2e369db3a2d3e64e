from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Explicit wildcard accepted by every match filter selector.
ANY = "any"
AnyValue = Literal["any"]


class SubjectRole(str, Enum):
    NEEDS_HELP = "Needs Help"
    CAN_HELP = "Can Help"


class LearningStyle(str, Enum):
    VISUAL = "Visual"
    AUDITORY = "Auditory"
    KINESTHETIC = "Kinesthetic"
    READING_WRITING = "Reading/Writing"


class StudyMethod(str, Enum):
    DISCUSSION = "Discussion"
    PROBLEM_SOLVING = "Problem-Solving"
    QUIET_REVIEW = "Quiet Review"
    FLASHCARDS = "Flashcards"


class CamelModel(BaseModel):
    """Base for wire models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
