"""Unit tests for the Message Store and conversation helpers."""
import json
from datetime import datetime, timezone

import pytest
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from studysphere.exceptions import MessageValidationError, NotFoundError, PersistenceError
from studysphere.schemas.message import Message
from studysphere.services.messaging_service import (
    MessagingService,
    _next_timestamp,
    partner_ids,
    summarize_conversations,
    thread_between,
)


class TestConversationHelpers:
    """Pure helpers over the demo message log."""

    def test_partners_in_first_seen_order(self, demo_messages):
        assert partner_ids(demo_messages, 4) == [3, 1]
        assert partner_ids(demo_messages, 1) == [4, 2]
        assert partner_ids(demo_messages, 2) == [1]

    def test_user_without_messages(self, demo_messages):
        assert partner_ids(demo_messages, 99) == []

    def test_thread_sorted_by_timestamp(self, demo_messages):
        shuffled = list(reversed(demo_messages))
        thread = thread_between(shuffled, 3, 4)
        assert [m.id for m in thread] == ["1", "2"]

    def test_thread_is_symmetric(self, demo_messages):
        assert thread_between(demo_messages, 4, 3) == thread_between(demo_messages, 3, 4)

    def test_equal_timestamps_fall_back_to_id(self):
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
        b = Message(id="b", sender_id=1, receiver_id=2, text="second", timestamp=ts)
        a = Message(id="a", sender_id=2, receiver_id=1, text="first", timestamp=ts)
        assert [m.id for m in thread_between([b, a], 1, 2)] == ["a", "b"]

    def test_summaries_carry_last_message(self, demo_messages, demo_users):
        summaries = summarize_conversations(demo_messages, 4, demo_users)
        assert [s.partner_name for s in summaries] == ["Priya Patel", "Aisha Sharma"]
        assert summaries[0].last_message.startswith("Hi Priya!")

    def test_summaries_skip_unknown_partners(self, demo_messages, demo_users):
        roster = [u for u in demo_users if u.id != 3]
        summaries = summarize_conversations(demo_messages, 4, roster)
        assert [s.partner_id for s in summaries] == [1]


class TestMessageWireFormat:
    def test_timestamp_serialises_as_utc_z(self, demo_messages):
        payload = json.loads(demo_messages[0].model_dump_json(by_alias=True))
        assert payload["timestamp"] == "2023-10-27T10:00:00Z"
        assert payload["senderId"] == 3
        assert payload["receiverId"] == 4

    def test_naive_timestamp_treated_as_utc(self):
        message = Message(
            id="x", sender_id=1, receiver_id=2, text="hi", timestamp=datetime(2024, 5, 1, 8, 30)
        )
        assert message.model_dump(mode="json")["timestamp"] == "2024-05-01T08:30:00Z"


class TestNextTimestamp:
    def test_strictly_increasing(self):
        stamps = [_next_timestamp() for _ in range(50)]
        assert all(a < b for a, b in zip(stamps, stamps[1:]))

    def test_clock_going_backwards(self):
        first = _next_timestamp()
        frozen = datetime(2000, 1, 1, tzinfo=timezone.utc)
        with patch("studysphere.services.messaging_service.datetime") as mock_dt:
            mock_dt.now.return_value = frozen
            second = _next_timestamp()
        assert second > first


class TestAppendMessage:
    """Tests for append_message against a mocked session."""

    @pytest.mark.asyncio
    async def test_rejects_blank_text(self, mock_db_session):
        with pytest.raises(MessageValidationError):
            await MessagingService().append_message(1, 4, "   \n\t", mock_db_session)
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejects_unknown_receiver(self, mock_db_session):
        mock_db_session.get.side_effect = [object(), None]
        with pytest.raises(NotFoundError) as exc_info:
            await MessagingService().append_message(1, 99, "Hello", mock_db_session)
        assert exc_info.value.identifier == 99
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_assigns_id_and_timestamp(self, mock_db_session):
        mock_db_session.get.return_value = object()
        service = MessagingService()

        first = await service.append_message(1, 4, "Integration tonight?", mock_db_session)
        second = await service.append_message(4, 1, "Sure, 7pm.", mock_db_session)

        assert first.id and second.id and first.id != second.id
        assert first.timestamp < second.timestamp
        assert first.text == "Integration tonight?"
        assert mock_db_session.add.call_count == 2
        assert mock_db_session.commit.await_count == 2

    @pytest.mark.asyncio
    async def test_commit_failure(self, mock_db_session):
        mock_db_session.get.return_value = object()
        mock_db_session.commit.side_effect = SQLAlchemyError("disk full")
        with pytest.raises(PersistenceError):
            await MessagingService().append_message(1, 4, "Hello", mock_db_session)
        mock_db_session.rollback.assert_awaited_once()
