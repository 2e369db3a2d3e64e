"""
StudySphere — Profile Store

Reads and writes users and their subject interests.  Also hosts the pure
profile-editing reducers used by the toggle endpoints:

  apply_interest — add / switch role / remove-on-repeat for one subject
  toggle_value   — flip one entry of a multi-select list (availability,
                   preferred study methods)

Every committed profile write advances the roster version in the match cache
so cached partner rankings are never served against a stale roster.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence, TypeVar

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studysphere.catalog import subject_exists
from studysphere.exceptions import ConflictError, NotFoundError, PersistenceError
from studysphere.models.user import User as UserRow
from studysphere.models.user import UserSubject
from studysphere.schemas.common import StudyMethod, SubjectRole
from studysphere.schemas.user import (
    Profile,
    User,
    UserSubjectInterest,
    UserUpdate,
)

logger = structlog.get_logger("studysphere.profile_service")

T = TypeVar("T")


# ──────────────────────────────────────────────────────────────────────────────
# Pure reducers
# ──────────────────────────────────────────────────────────────────────────────

def apply_interest(
    current: Sequence[UserSubjectInterest],
    subject_id: int,
    role: SubjectRole,
) -> tuple[UserSubjectInterest, ...]:
    """Return the interests after the user picks ``role`` for ``subject_id``.

    Three cases:
      * no interest in the subject yet  -> append it;
      * same subject with the other role -> switch role, keep its position;
      * same subject with the same role  -> remove it.
    """
    existing = next((s for s in current if s.subject_id == subject_id), None)

    if existing is None:
        return (*current, UserSubjectInterest(subject_id=subject_id, role=role))

    if existing.role == role:
        return tuple(s for s in current if s.subject_id != subject_id)

    return tuple(
        UserSubjectInterest(subject_id=subject_id, role=role)
        if s.subject_id == subject_id
        else s
        for s in current
    )


def toggle_value(values: Iterable[T], value: T) -> tuple[T, ...]:
    """Remove ``value`` if present, otherwise append it."""
    values = tuple(values)
    if value in values:
        return tuple(v for v in values if v != value)
    return (*values, value)


def validate_interests(interests: Iterable[UserSubjectInterest]) -> None:
    """Raise ``NotFoundError`` for the first interest whose subject is not in
    the catalog."""
    for interest in interests:
        if not subject_exists(interest.subject_id):
            raise NotFoundError("Subject", interest.subject_id)


def user_from_row(row: UserRow) -> User:
    """Convert an ORM ``users`` row (with its interests) to the domain model."""
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        avatar_url=row.avatar_url or "",
        profile=Profile(
            bio=row.bio or "",
            learning_style=row.learning_style,
            preferred_methods=tuple(row.preferred_methods or ()),
            availability=tuple(row.availability or ()),
            subjects=tuple(
                UserSubjectInterest(subject_id=s.subject_id, role=s.role)
                for s in row.subjects
            ),
        ),
    )


# ──────────────────────────────────────────────────────────────────────────────
# Store
# ──────────────────────────────────────────────────────────────────────────────

class ProfileService:
    """Profile Store backed by the ``users`` / ``user_subjects`` tables."""

    def __init__(self, cache: Any | None = None) -> None:
        self.cache = cache

    # ── Reads ─────────────────────────────────────────────────────────────

    async def load_roster(self, db_session: AsyncSession) -> tuple[User, ...]:
        """Snapshot of every user, ordered by id, read in a single query."""
        stmt = select(UserRow).order_by(UserRow.id)
        result = await db_session.execute(stmt)
        roster = tuple(user_from_row(row) for row in result.scalars().all())
        logger.debug("roster_loaded", size=len(roster))
        return roster

    async def get_user(self, user_id: int, db_session: AsyncSession) -> User:
        return user_from_row(await self._get_row(user_id, db_session))

    # ── Writes ────────────────────────────────────────────────────────────

    async def update_user(
        self,
        user_id: int,
        payload: UserUpdate,
        db_session: AsyncSession,
    ) -> User:
        """Merge the fields present in ``payload`` into the stored user.

        Raises
        ------
        NotFoundError
            Unknown user, or an interest referencing an unknown subject.
        ConflictError
            The new email belongs to another user.
        PersistenceError
            The write could not be committed.
        """
        log = logger.bind(user_id=user_id)
        log.info("update_user_start")

        row = await self._get_row(user_id, db_session)
        update_data = payload.model_dump(exclude_unset=True)

        for field in ("name", "email", "avatar_url"):
            if update_data.get(field) is not None:
                setattr(row, field, update_data[field])

        profile_update = payload.profile
        if profile_update is not None:
            profile_fields = profile_update.model_fields_set
            if "bio" in profile_fields and profile_update.bio is not None:
                row.bio = profile_update.bio
            if "learning_style" in profile_fields and profile_update.learning_style is not None:
                row.learning_style = profile_update.learning_style.value
            if "preferred_methods" in profile_fields and profile_update.preferred_methods is not None:
                row.preferred_methods = [
                    m.value for m in _unique(profile_update.preferred_methods)
                ]
            if "availability" in profile_fields and profile_update.availability is not None:
                row.availability = list(_unique(profile_update.availability))
            if "subjects" in profile_fields and profile_update.subjects is not None:
                interests = tuple(profile_update.subjects)
                validate_interests(interests)
                self._sync_interests(row, interests)

        user = await self._commit(row, db_session, log)
        log.info("update_user_complete", updated_fields=sorted(update_data.keys()))
        return user

    async def upsert_user(self, user: User, db_session: AsyncSession) -> User:
        """Insert ``user`` or replace-merge it onto the existing row."""
        log = logger.bind(user_id=user.id)
        validate_interests(user.profile.subjects)

        row = await db_session.get(UserRow, user.id)
        if row is None:
            row = UserRow(id=user.id, subjects=[])
            db_session.add(row)
            log.info("upsert_user_insert")

        row.name = user.name
        row.email = user.email
        row.avatar_url = user.avatar_url
        row.bio = user.profile.bio
        row.learning_style = user.profile.learning_style.value
        row.preferred_methods = [m.value for m in user.profile.preferred_methods]
        row.availability = list(user.profile.availability)
        self._sync_interests(row, user.profile.subjects)

        return await self._commit(row, db_session, log)

    async def toggle_interest(
        self,
        user_id: int,
        subject_id: int,
        role: SubjectRole,
        db_session: AsyncSession,
    ) -> User:
        """Apply one subject-role click to the stored profile."""
        if not subject_exists(subject_id):
            raise NotFoundError("Subject", subject_id)

        row = await self._get_row(user_id, db_session)
        current = user_from_row(row).profile.subjects
        updated = apply_interest(current, subject_id, role)
        self._sync_interests(row, updated)

        log = logger.bind(user_id=user_id, subject_id=subject_id, role=role.value)
        log.info("toggle_interest", interest_count=len(updated))
        return await self._commit(row, db_session, log)

    async def toggle_availability(
        self, user_id: int, slot: str, db_session: AsyncSession
    ) -> User:
        row = await self._get_row(user_id, db_session)
        row.availability = list(toggle_value(row.availability or (), slot))
        log = logger.bind(user_id=user_id, slot=slot)
        log.info("toggle_availability", slot_count=len(row.availability))
        return await self._commit(row, db_session, log)

    async def toggle_study_method(
        self, user_id: int, method: StudyMethod, db_session: AsyncSession
    ) -> User:
        row = await self._get_row(user_id, db_session)
        row.preferred_methods = list(
            toggle_value(row.preferred_methods or (), method.value)
        )
        log = logger.bind(user_id=user_id, method=method.value)
        log.info("toggle_study_method", method_count=len(row.preferred_methods))
        return await self._commit(row, db_session, log)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _get_row(self, user_id: int, db_session: AsyncSession) -> UserRow:
        stmt = select(UserRow).where(UserRow.id == user_id)
        result = await db_session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            logger.warning("user_not_found", user_id=user_id)
            raise NotFoundError("User", user_id)
        return row

    @staticmethod
    def _sync_interests(row: UserRow, interests: Sequence[UserSubjectInterest]) -> None:
        """Make ``row.subjects`` match ``interests``.

        Rows for subjects that stay are updated in place so the
        ``(user_id, subject_id)`` unique constraint never sees a transient
        duplicate during flush.
        """
        by_subject = {s.subject_id: s for s in row.subjects}
        synced: list[UserSubject] = []
        for position, interest in enumerate(interests):
            existing = by_subject.get(interest.subject_id)
            if existing is None:
                existing = UserSubject(subject_id=interest.subject_id)
            existing.role = interest.role.value
            existing.position = position
            synced.append(existing)
        row.subjects = synced

    async def _commit(self, row: UserRow, db_session: AsyncSession, log) -> User:
        try:
            await db_session.commit()
        except IntegrityError as exc:
            await db_session.rollback()
            log.warning("profile_write_conflict", error=str(exc))
            raise ConflictError(f"User {row.id} clashes with an existing user (email already in use).") from exc
        except SQLAlchemyError as exc:
            await db_session.rollback()
            log.error("profile_write_failed", error=str(exc))
            raise PersistenceError(f"Could not save user {row.id}") from exc

        if self.cache is not None:
            await self.cache.bump_roster_version()

        return user_from_row(row)


def _unique(values: Iterable[T]) -> tuple[T, ...]:
    """Drop repeated entries, keeping first occurrences in order."""
    seen: list[T] = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return tuple(seen)
