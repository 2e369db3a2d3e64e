"""
StudySphere — Messages API

Direct messages between users: the raw log, a user's conversation list and a
single thread.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from studysphere.api.deps import (
    get_messaging_service,
    get_profile_service,
    get_session_user_id,
    http_error,
)
from studysphere.database import get_db
from studysphere.exceptions import StudySphereError
from studysphere.schemas.message import ConversationSummary, Message, MessageCreate
from studysphere.services.messaging_service import MessagingService, summarize_conversations
from studysphere.services.profile_service import ProfileService

logger = structlog.get_logger("studysphere.api.messages")

router = APIRouter()


@router.get("", response_model=list[Message], summary="List every message")
async def list_messages(
    db: AsyncSession = Depends(get_db),
    messaging: MessagingService = Depends(get_messaging_service),
) -> list[Message]:
    return await messaging.get_messages(db)


@router.get(
    "/{user_id}/conversations",
    response_model=list[ConversationSummary],
    summary="A user's conversation partners",
)
async def list_conversations(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    messaging: MessagingService = Depends(get_messaging_service),
    profiles: ProfileService = Depends(get_profile_service),
) -> list[ConversationSummary]:
    """Partners in the order they first appear in the user's message history,
    each with the latest message exchanged."""
    try:
        await profiles.get_user(user_id, db)
    except StudySphereError as exc:
        raise http_error(exc) from exc

    messages = await messaging.messages_for_user(user_id, db)
    roster = await profiles.load_roster(db)
    return summarize_conversations(messages, user_id, roster)


@router.get(
    "/{user_id}/with/{other_id}",
    response_model=list[Message],
    summary="The thread between two users",
)
async def get_thread(
    user_id: int,
    other_id: int,
    db: AsyncSession = Depends(get_db),
    messaging: MessagingService = Depends(get_messaging_service),
) -> list[Message]:
    return await messaging.conversation(user_id, other_id, db)


@router.post(
    "",
    response_model=Message,
    status_code=status.HTTP_201_CREATED,
    summary="Send a direct message",
)
async def send_message(
    payload: MessageCreate,
    sender_id: int = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db),
    messaging: MessagingService = Depends(get_messaging_service),
) -> Message:
    log = logger.bind(sender_id=sender_id, receiver_id=payload.receiver_id)
    try:
        message = await messaging.append_message(
            sender_id, payload.receiver_id, payload.text, db
        )
    except StudySphereError as exc:
        log.info("send_message_failed", error_type=type(exc).__name__)
        raise http_error(exc) from exc
    return message
