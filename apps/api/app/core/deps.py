"""FastAPI dependencies for authentication, view mode, and database access."""

from dataclasses import dataclass
from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.core.security import decode_access_token
from app.db.session import SessionLocal
from app.schemas.auth import TokenPayload, UserSession


# Cookie and header names
COOKIE_NAME = "photoclient_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _extract_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get(COOKIE_NAME)


def get_optional_session(request: Request) -> UserSession | None:
    """Session if a valid token is present, else None (shared links)."""
    token = _extract_token(request)
    if not token:
        return None
    try:
        payload = TokenPayload(**decode_access_token(token))
    except (jwt.InvalidTokenError, ValueError):
        return None
    return UserSession(user_id=payload.sub, email=payload.email)


def get_current_session(request: Request) -> UserSession:
    """
    Get the authenticated photographer.

    Raises:
        HTTPException 401: Missing, invalid or expired token
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = TokenPayload(**decode_access_token(token))
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Session expired")
    except (jwt.InvalidTokenError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")

    return UserSession(user_id=payload.sub, email=payload.email)


@dataclass
class ViewContext:
    """
    Who is looking at a client and in which mode.

    `shared` is the client-facing, read/approve-only rendering; `session`
    is None for unauthenticated shared links.
    """
    shared: bool
    session: UserSession | None

    @property
    def actor_id(self) -> UUID | None:
        return self.session.user_id if self.session else None


def get_view_context(
    request: Request,
    shared: bool = Query(False, description="Client-facing shared view"),
) -> ViewContext:
    """
    Resolve the view mode from the `shared` query parameter.

    Shared views need no token; photographer views require one.
    """
    if shared:
        return ViewContext(shared=True, session=get_optional_session(request))
    return ViewContext(shared=False, session=get_current_session(request))


def require_photographer_view(
    view: ViewContext = Depends(get_view_context),
) -> ViewContext:
    """Reject shared-mode calls to photographer-only mutations."""
    if view.shared:
        raise HTTPException(status_code=403, detail="Not available in shared view")
    return view


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
