from __future__ import annotations

from typing import Optional, Union

from pydantic import ConfigDict

from studysphere.schemas.common import (
    ANY,
    AnyValue,
    CamelModel,
    LearningStyle,
    StudyMethod,
    SubjectRole,
)
from studysphere.schemas.user import User


class MatchFilters(CamelModel):
    """Partner search selectors.

    Every selector is total: it holds either a concrete value or the explicit
    ``"any"`` wildcard.  ``role`` only narrows the search when ``subject`` is
    concrete; a dangling role is ignored rather than rejected.
    """

    model_config = ConfigDict(frozen=True)

    subject: Union[int, AnyValue] = ANY
    role: Union[SubjectRole, AnyValue] = ANY
    study_method: Union[StudyMethod, AnyValue] = ANY
    learning_style: Union[LearningStyle, AnyValue] = ANY

    @property
    def effective_role(self) -> Union[SubjectRole, AnyValue]:
        return ANY if self.subject == ANY else self.role

    def cache_token(self) -> str:
        """Stable string identifying the effective filter set."""
        parts = (self.subject, self.effective_role, self.study_method, self.learning_style)
        return "|".join(p.value if hasattr(p, "value") else str(p) for p in parts)


class ScoreBreakdown(CamelModel):
    model_config = ConfigDict(frozen=True)

    can_help_you: int = 0
    you_can_help: int = 0
    shared_availability: int = 0
    shared_methods: int = 0

    @property
    def total(self) -> int:
        return (
            self.can_help_you
            + self.you_can_help
            + self.shared_availability
            + self.shared_methods
        )


class RankedCandidate(CamelModel):
    model_config = ConfigDict(frozen=True)

    user: User
    score: int
    breakdown: ScoreBreakdown
    best_match_subject_id: Optional[int] = None
    highlight: Optional[str] = None


class PartnerSearchResponse(CamelModel):
    requester_id: int
    filters: MatchFilters
    roster_version: int
    cached: bool = False
    results: list[RankedCandidate]
