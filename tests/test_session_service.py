"""Unit tests for SessionService: anonymous Fernet sessions tracked in Redis."""
import pytest
from unittest.mock import AsyncMock, patch

from cryptography.fernet import Fernet
from redis.exceptions import ConnectionError as RedisConnectionError

from studysphere.exceptions import SessionError
from studysphere.services.session_service import SessionService, session_key
from tests.factories import FakeRedis


@pytest.fixture
def fernet():
    return Fernet(Fernet.generate_key())


@pytest.fixture
def redis_store():
    return FakeRedis()


@pytest.fixture
def sessions(redis_store, fernet, point_settings):
    with patch("studysphere.services.session_service.get_settings") as mock:
        mock.return_value = point_settings
        service = SessionService(redis_store, fernet)
    return service


class TestSessionLifecycle:
    @pytest.mark.asyncio
    async def test_issue_then_verify(self, sessions, redis_store):
        issued = await sessions.issue(3)
        assert redis_store.data[session_key(issued.session_id)] == "3"

        session_id, user_id = await sessions.verify(issued.token)
        assert (session_id, user_id) == (issued.session_id, 3)

    @pytest.mark.asyncio
    async def test_revoked_token_stops_verifying(self, sessions):
        issued = await sessions.issue(1)
        await sessions.revoke(issued.token)
        with pytest.raises(SessionError):
            await sessions.verify(issued.token)

    @pytest.mark.asyncio
    async def test_expired_session_rejected(self, sessions, redis_store):
        issued = await sessions.issue(1)
        redis_store.data.clear()
        with pytest.raises(SessionError):
            await sessions.verify(issued.token)

    @pytest.mark.asyncio
    async def test_foreign_key_rejected(self, sessions, redis_store, point_settings):
        with patch("studysphere.services.session_service.get_settings") as mock:
            mock.return_value = point_settings
            other = SessionService(redis_store, Fernet(Fernet.generate_key()))
        issued = await other.issue(1)
        with pytest.raises(SessionError):
            await sessions.verify(issued.token)

    @pytest.mark.asyncio
    async def test_garbage_token_rejected(self, sessions):
        with pytest.raises(SessionError):
            await sessions.verify("not-a-token")

    @pytest.mark.asyncio
    async def test_redis_outage_on_issue(self, fernet, point_settings):
        redis_client = AsyncMock()
        redis_client.setex.side_effect = RedisConnectionError("refused")
        with patch("studysphere.services.session_service.get_settings") as mock:
            mock.return_value = point_settings
            service = SessionService(redis_client, fernet)
        with pytest.raises(SessionError):
            await service.issue(1)
