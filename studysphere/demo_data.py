"""
StudySphere — Demo roster, groups and messages.

Loaded into an empty database by ``scripts/seed_demo_data.py`` and reused by
the test suite as a realistic fixture.
"""

from datetime import datetime, timezone

from studysphere.schemas.common import LearningStyle, StudyMethod, SubjectRole
from studysphere.schemas.group import Group, WorkspaceContent
from studysphere.schemas.message import Message
from studysphere.schemas.user import Profile, User, UserSubjectInterest

NEEDS = SubjectRole.NEEDS_HELP
CAN = SubjectRole.CAN_HELP


def _interests(*pairs):
    return tuple(UserSubjectInterest(subject_id=sid, role=role) for sid, role in pairs)


DEMO_USERS: tuple[User, ...] = (
    User(
        id=1,
        name="Aisha Sharma",
        email="aisha@school.edu",
        avatar_url="https://picsum.photos/seed/aisha/200",
        profile=Profile(
            bio="Physics enthusiast, aiming for IIT. Looking for a serious study group for Maths.",
            learning_style=LearningStyle.VISUAL,
            preferred_methods=(StudyMethod.PROBLEM_SOLVING, StudyMethod.DISCUSSION),
            availability=("Evenings", "Weekends"),
            subjects=_interests((3, NEEDS), (1, CAN), (2, CAN)),
        ),
    ),
    User(
        id=2,
        name="Rohan Verma",
        email="rohan@school.edu",
        avatar_url="https://picsum.photos/seed/rohan/200",
        profile=Profile(
            bio="Future software engineer. I learn best by coding and explaining concepts to others.",
            learning_style=LearningStyle.KINESTHETIC,
            preferred_methods=(StudyMethod.PROBLEM_SOLVING, StudyMethod.QUIET_REVIEW),
            availability=("Afternoons", "Weekends"),
            subjects=_interests((5, NEEDS), (1, CAN), (8, NEEDS)),
        ),
    ),
    User(
        id=3,
        name="Priya Patel",
        email="priya@school.edu",
        avatar_url="https://picsum.photos/seed/priya/200",
        profile=Profile(
            bio="Commerce student who enjoys debates. I can help with theory subjects.",
            learning_style=LearningStyle.READING_WRITING,
            preferred_methods=(StudyMethod.DISCUSSION, StudyMethod.FLASHCARDS),
            availability=("Mornings", "Evenings"),
            subjects=_interests((7, CAN), (6, CAN), (2, NEEDS)),
        ),
    ),
    User(
        id=4,
        name="Vikram Singh",
        email="vikram@school.edu",
        avatar_url="https://picsum.photos/seed/vikram/200",
        profile=Profile(
            bio=(
                "Science & Math whiz. I believe in grinding through problems until "
                "they make sense. Trying to get into coding."
            ),
            learning_style=LearningStyle.VISUAL,
            preferred_methods=(StudyMethod.PROBLEM_SOLVING,),
            availability=("Afternoons", "Evenings", "Weekends"),
            subjects=_interests((1, CAN), (2, CAN), (3, CAN), (5, NEEDS)),
        ),
    ),
)

DEMO_GROUPS: tuple[Group, ...] = (
    Group(
        id=101,
        name="Maths Masters",
        subject_id=3,
        members=[1, 4],
        workspace_content=WorkspaceContent(
            scratchpad=(
                "Trigonometry Formulas:\n\n"
                "sin(A + B) = sinA cosB + cosA sinB\n"
                "cos(A + B) = cosA cosB - sinA sinB\n\n"
                "Key areas to review:\n"
                "- Integration by parts\n"
                "- Probability theorems\n"
                "- 3D Geometry"
            ),
        ),
    ),
    Group(
        id=102,
        name="English Lit Circle",
        subject_id=6,
        members=[2, 3],
        workspace_content=WorkspaceContent(
            scratchpad=(
                "Figure of Speech practice:\n\n"
                "- Metaphor vs Simile\n"
                "- Alliteration examples\n"
                "- Personification in \"The Brook\"\n\n"
                "Next topic: Shakespeare's Sonnets"
            ),
        ),
    ),
)


def _at(hour: int, minute: int) -> datetime:
    return datetime(2023, 10, 27, hour, minute, tzinfo=timezone.utc)


DEMO_MESSAGES: tuple[Message, ...] = (
    Message(
        id="1",
        sender_id=3,
        receiver_id=4,
        text=(
            "Hey Vikram! I saw you can help with Chemistry. I'm struggling with "
            "reaction mechanisms. Want to form a study group?"
        ),
        timestamp=_at(10, 0),
    ),
    Message(
        id="2",
        sender_id=4,
        receiver_id=3,
        text="Hi Priya! Absolutely. I'm always down to solve some chem problems. When are you free?",
        timestamp=_at(10, 5),
    ),
    Message(
        id="3",
        sender_id=1,
        receiver_id=4,
        text=(
            "Hi Vikram, I saw you're a whiz at Maths. I could use a partner for "
            "tackling some tough integration problems. Interested?"
        ),
        timestamp=_at(10, 6),
    ),
    Message(
        id="4",
        sender_id=2,
        receiver_id=1,
        text=(
            "Hey Aisha, great notes on electromagnetism! We should totally form a "
            "group to solve physics problems faster."
        ),
        timestamp=_at(11, 0),
    ),
)
