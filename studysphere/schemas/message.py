from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import ConfigDict, Field, field_serializer

from studysphere.schemas.common import CamelModel


class MessageCreate(CamelModel):
    """Body of a new message; the sender is the signed-in user."""

    receiver_id: int
    text: str = Field(max_length=4000)


class Message(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    sender_id: int
    receiver_id: int
    text: str
    timestamp: datetime

    @field_serializer("timestamp")
    def _iso_utc(self, ts: datetime) -> str:
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class ConversationSummary(CamelModel):
    partner_id: int
    partner_name: str
    partner_avatar_url: str
    last_message: Optional[str] = None
