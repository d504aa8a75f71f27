"""Re-issue the session cookie with the expiry extended by this request."""

from __future__ import annotations

from typing import TYPE_CHECKING

from forum.auth.cookies import session_cookie_header
from forum.auth.models import AuthenticatedUser
from shared.auth.authenticator import SESSION_COOKIE_NAME

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

_SESSION_COOKIE_PREFIX = f"{SESSION_COOKIE_NAME}=".encode("latin-1")


class SessionCookieRefreshMiddleware:
    """Keep the cookie expiry equal to the stored session expiry.

    Every validated request slides the session expiry forward, so
    authenticated responses carry a fresh Set-Cookie. Responses that
    already set or clear the session cookie (login, logout) are left alone.
    Must run inside AuthenticationMiddleware so scope["user"] is populated.
    """

    def __init__(self, app: ASGIApp, *, cookie_secure: bool = False) -> None:
        self.app = app
        self._cookie_secure = cookie_secure

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        user = scope.get("user")
        if not isinstance(user, AuthenticatedUser):
            await self.app(scope, receive, send)
            return

        async def send_with_cookie(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                already_set = any(
                    name == b"set-cookie" and value.startswith(_SESSION_COOKIE_PREFIX) for name, value in headers
                )
                if not already_set:
                    headers.append(session_cookie_header(user.session, cookie_secure=self._cookie_secure))
                    message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_cookie)
