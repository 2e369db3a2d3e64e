from datetime import datetime

from studysphere.schemas.common import CamelModel


class AnonymousSessionRequest(CamelModel):
    user_id: int


class SessionResponse(CamelModel):
    token: str
    session_id: str
    user_id: int
    expires_at: datetime
