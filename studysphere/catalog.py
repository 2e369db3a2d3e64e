"""
StudySphere — Static subject catalog and profile option lists.

The catalog is fixed at deploy time and mirrored into the ``subjects`` table
by the initial migration and the demo seed script.
"""

from __future__ import annotations

from studysphere.schemas.common import LearningStyle, StudyMethod
from studysphere.schemas.subject import Subject

UNKNOWN_SUBJECT = "Unknown"

ALL_SUBJECTS: tuple[Subject, ...] = (
    Subject(id=1, name="Physics"),
    Subject(id=2, name="Chemistry"),
    Subject(id=3, name="Maths"),
    Subject(id=4, name="Biology"),
    Subject(id=5, name="Computer Science"),
    Subject(id=6, name="English"),
    Subject(id=7, name="Commerce"),
    Subject(id=8, name="Business Studies"),
)

ALL_LEARNING_STYLES: tuple[LearningStyle, ...] = tuple(LearningStyle)
ALL_STUDY_METHODS: tuple[StudyMethod, ...] = tuple(StudyMethod)
ALL_AVAILABILITY: tuple[str, ...] = ("Mornings", "Afternoons", "Evenings", "Weekends")

_SUBJECTS_BY_ID: dict[int, Subject] = {s.id: s for s in ALL_SUBJECTS}


def get_subject(subject_id: int) -> Subject | None:
    return _SUBJECTS_BY_ID.get(subject_id)


def subject_exists(subject_id: int) -> bool:
    return subject_id in _SUBJECTS_BY_ID


def subject_name(subject_id: int) -> str:
    """Display name for ``subject_id``; unknown ids resolve to ``"Unknown"``."""
    subject = _SUBJECTS_BY_ID.get(subject_id)
    return subject.name if subject is not None else UNKNOWN_SUBJECT
