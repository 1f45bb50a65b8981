"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel


class TokenPayload(BaseModel):
    """Decoded access token structure (hosted auth provider)."""
    sub: UUID  # user_id
    email: str | None = None
    role: str = "authenticated"


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by get_current_session; the photographer identity that
    owns clients is `user_id`.
    """
    user_id: UUID
    email: str | None = None
