"""
StudySphere — Message Store and conversation views.

Messages are append-only.  The server assigns each one an opaque id and a
UTC timestamp that strictly increases within the process, so a thread sorted
by ``(timestamp, id)`` always reproduces send order.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, Sequence

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studysphere.exceptions import MessageValidationError, NotFoundError, PersistenceError
from studysphere.models.message import Message as MessageRow
from studysphere.models.user import User as UserRow
from studysphere.schemas.message import ConversationSummary, Message
from studysphere.schemas.user import User

logger = structlog.get_logger("studysphere.messaging_service")

_clock_lock = threading.Lock()
_last_timestamp: datetime | None = None


def _next_timestamp() -> datetime:
    """Current UTC time, bumped by one microsecond if the clock has not moved
    past the previous value."""
    global _last_timestamp
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if _last_timestamp is not None and now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
        return now


def message_from_row(row: MessageRow) -> Message:
    return Message(
        id=row.id,
        sender_id=row.sender_id,
        receiver_id=row.receiver_id,
        text=row.text,
        timestamp=row.timestamp,
    )


# ──────────────────────────────────────────────────────────────────────────────
# Pure conversation helpers
# ──────────────────────────────────────────────────────────────────────────────

def thread_between(messages: Iterable[Message], user_a: int, user_b: int) -> list[Message]:
    """Messages exchanged between ``user_a`` and ``user_b``, oldest first."""
    pair = {user_a, user_b}
    thread = [
        m for m in messages
        if {m.sender_id, m.receiver_id} == pair
    ]
    return sorted(thread, key=lambda m: (m.timestamp, m.id))


def partner_ids(messages: Sequence[Message], user_id: int) -> list[int]:
    """Users ``user_id`` has exchanged messages with, in first-seen order."""
    seen: list[int] = []
    for m in messages:
        if m.sender_id == user_id:
            other = m.receiver_id
        elif m.receiver_id == user_id:
            other = m.sender_id
        else:
            continue
        if other not in seen:
            seen.append(other)
    return seen


def summarize_conversations(
    messages: Sequence[Message],
    user_id: int,
    roster: Iterable[User],
) -> list[ConversationSummary]:
    """One entry per conversation partner with the latest message text.

    Partners that are no longer in ``roster`` are skipped.
    """
    users = {u.id: u for u in roster}
    summaries: list[ConversationSummary] = []
    for other_id in partner_ids(messages, user_id):
        partner = users.get(other_id)
        if partner is None:
            continue
        thread = thread_between(messages, user_id, other_id)
        summaries.append(
            ConversationSummary(
                partner_id=partner.id,
                partner_name=partner.name,
                partner_avatar_url=partner.avatar_url,
                last_message=thread[-1].text if thread else None,
            )
        )
    return summaries


# ──────────────────────────────────────────────────────────────────────────────
# Store
# ──────────────────────────────────────────────────────────────────────────────

class MessagingService:
    """Message Store backed by the ``messages`` table."""

    async def get_messages(self, db_session: AsyncSession) -> list[Message]:
        """Every message, in append order."""
        stmt = select(MessageRow).order_by(MessageRow.timestamp, MessageRow.id)
        result = await db_session.execute(stmt)
        return [message_from_row(row) for row in result.scalars().all()]

    async def messages_for_user(self, user_id: int, db_session: AsyncSession) -> list[Message]:
        stmt = (
            select(MessageRow)
            .where(or_(MessageRow.sender_id == user_id, MessageRow.receiver_id == user_id))
            .order_by(MessageRow.timestamp, MessageRow.id)
        )
        result = await db_session.execute(stmt)
        return [message_from_row(row) for row in result.scalars().all()]

    async def conversation(
        self,
        user_a: int,
        user_b: int,
        db_session: AsyncSession,
    ) -> list[Message]:
        """The thread between two users, oldest first."""
        stmt = (
            select(MessageRow)
            .where(
                or_(
                    (MessageRow.sender_id == user_a) & (MessageRow.receiver_id == user_b),
                    (MessageRow.sender_id == user_b) & (MessageRow.receiver_id == user_a),
                )
            )
            .order_by(MessageRow.timestamp, MessageRow.id)
        )
        result = await db_session.execute(stmt)
        return [message_from_row(row) for row in result.scalars().all()]

    async def append_message(
        self,
        sender_id: int,
        receiver_id: int,
        text: str,
        db_session: AsyncSession,
    ) -> Message:
        """Store a new message and return it with its server-assigned id and
        timestamp.

        Raises
        ------
        MessageValidationError
            If ``text`` is empty or whitespace only.
        NotFoundError
            If the sender or receiver does not exist.
        PersistenceError
            If the insert could not be committed.
        """
        log = logger.bind(sender_id=sender_id, receiver_id=receiver_id)

        if not text or not text.strip():
            log.info("message_rejected_empty")
            raise MessageValidationError("Message text must not be empty.")

        for participant_id in (sender_id, receiver_id):
            if await db_session.get(UserRow, participant_id) is None:
                log.warning("message_participant_missing", user_id=participant_id)
                raise NotFoundError("User", participant_id)

        row = MessageRow(
            id=str(uuid.uuid4()),
            sender_id=sender_id,
            receiver_id=receiver_id,
            text=text,
            timestamp=_next_timestamp(),
        )
        db_session.add(row)
        try:
            await db_session.commit()
        except SQLAlchemyError as exc:
            await db_session.rollback()
            log.error("message_write_failed", error=str(exc))
            raise PersistenceError("Could not save message") from exc

        log.info("message_appended", message_id=row.id)
        return message_from_row(row)
