# src/hydronyx_web/session_data.py

from pydantic import BaseModel, ConfigDict
from typing import Optional


class SessionData(BaseModel):
    """
    Represents the data stored server-side for a user session.
    Only a unique session ID will be stored in the browser cookie.
    """
    model_config = ConfigDict(extra="ignore")

    user_email: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    logged_in_at: Optional[int] = None  # Unix timestamp of the last login

    @property
    def authenticated(self) -> bool:
        return bool(self.access_token)


class SessionInfo(BaseModel):
    """What the browser is allowed to see about its session (never the tokens)."""
    authenticated: bool
    user_email: Optional[str] = None
    logged_in_at: Optional[int] = None

    @classmethod
    def from_session(cls, session: dict) -> "SessionInfo":
        data = SessionData.model_validate(session)
        return cls(
            authenticated=data.authenticated,
            user_email=data.user_email,
            logged_in_at=data.logged_in_at,
        )
