"""Tests for the acting-user dependencies shared by the write routes."""
import pytest
from unittest.mock import patch

from cryptography.fernet import Fernet
from fastapi import HTTPException, status

from studysphere.api.deps import bearer_token, get_session_user_id, require_profile_owner
from studysphere.exceptions import SessionError
from studysphere.services.session_service import SessionService
from tests.factories import FakeRedis


@pytest.fixture
def sessions(point_settings):
    with patch("studysphere.services.session_service.get_settings") as mock:
        mock.return_value = point_settings
        service = SessionService(FakeRedis(), Fernet(Fernet.generate_key()))
    return service


class TestBearerToken:
    def test_extracts_token(self):
        assert bearer_token("Bearer abc.def") == "abc.def"
        assert bearer_token("bearer  abc ") == "abc"

    @pytest.mark.parametrize("header", ["abc", "Basic abc", "Bearer ", "Bearer    "])
    def test_rejects_other_schemes(self, header):
        with pytest.raises(SessionError):
            bearer_token(header)


class TestSessionUser:
    @pytest.mark.asyncio
    async def test_live_session_yields_its_user(self, sessions):
        issued = await sessions.issue(4)
        user_id = await get_session_user_id(authorization=f"Bearer {issued.token}", sessions=sessions)
        assert user_id == 4

    @pytest.mark.asyncio
    async def test_signed_out_session_is_unauthorized(self, sessions):
        issued = await sessions.issue(4)
        await sessions.revoke(issued.token)
        with pytest.raises(HTTPException) as exc_info:
            await get_session_user_id(authorization=f"Bearer {issued.token}", sessions=sessions)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_missing_bearer_scheme_is_unauthorized(self, sessions):
        with pytest.raises(HTTPException) as exc_info:
            await get_session_user_id(authorization="token-without-scheme", sessions=sessions)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED


class TestProfileOwner:
    @pytest.mark.asyncio
    async def test_owner_passes(self):
        assert await require_profile_owner(user_id=2, session_user_id=2) == 2

    @pytest.mark.asyncio
    async def test_other_user_is_forbidden(self):
        with pytest.raises(HTTPException) as exc_info:
            await require_profile_owner(user_id=2, session_user_id=3)
        assert exc_info.value.status_code == status.HTTP_403_FORBIDDEN
