"""Test data builders."""
from studysphere.schemas.common import LearningStyle
from studysphere.schemas.user import Profile, User, UserSubjectInterest


def make_user(
    user_id,
    interests=(),
    availability=(),
    methods=(),
    style=LearningStyle.VISUAL,
    name=None,
):
    """Build a ``User`` from ``(subject_id, role)`` pairs."""
    return User(
        id=user_id,
        name=name or f"User {user_id}",
        email=f"user{user_id}@school.edu",
        avatar_url=f"https://picsum.photos/seed/{user_id}/200",
        profile=Profile(
            learning_style=style,
            preferred_methods=tuple(methods),
            availability=tuple(availability),
            subjects=tuple(
                UserSubjectInterest(subject_id=sid, role=role) for sid, role in interests
            ),
        ),
    )


class FakeRedis:
    """Minimal async key/value store for the calls SessionService makes."""

    def __init__(self):
        self.data = {}

    async def setex(self, key, ttl, value):
        self.data[key] = value

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, key):
        self.data.pop(key, None)
