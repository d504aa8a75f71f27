"""Session and OAuth-state cookie helpers."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from starlette.responses import Response

from shared.auth.authenticator import SESSION_COOKIE_NAME
from shared.auth.oauth_state import STATE_TTL_SECONDS

if TYPE_CHECKING:
    from shared.auth.models import AuthSession

OAUTH_STATE_COOKIE_NAME = "oauth_state"


def set_session_cookie(response: Response, session: AuthSession, *, cookie_secure: bool) -> None:
    """Set an HTTP-only session cookie expiring together with the stored session."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session.token,
        expires=datetime.fromtimestamp(session.expires_at, tz=UTC),
        httponly=True,
        samesite="lax",
        secure=cookie_secure,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")


def session_cookie_header(session: AuthSession, *, cookie_secure: bool) -> tuple[bytes, bytes]:
    """Return the raw Set-Cookie header for a session, for use outside a handler."""
    response = Response()
    set_session_cookie(response, session, cookie_secure=cookie_secure)
    return next((k, v) for k, v in response.raw_headers if k == b"set-cookie")


def set_oauth_state_cookie(response: Response, state: str, *, cookie_secure: bool) -> None:
    """Remember the issued OAuth state for the browser that started the attempt.

    SameSite=Lax so the cookie accompanies the provider's top-level redirect back.
    """
    response.set_cookie(
        key=OAUTH_STATE_COOKIE_NAME,
        value=state,
        max_age=STATE_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=cookie_secure,
        path="/",
    )


def clear_oauth_state_cookie(response: Response) -> None:
    response.delete_cookie(key=OAUTH_STATE_COOKIE_NAME, path="/")
