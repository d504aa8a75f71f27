"""Starlette AuthenticationBackend that resolves the session cookie."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import AuthCredentials, AuthenticationBackend

from forum.auth.models import AuthenticatedUser

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from shared.auth.authenticator import RequestAuthenticator
    from shared.auth.service import AuthService


class SessionCookieBackend(AuthenticationBackend):
    """Authenticate requests via the session_token cookie.

    Anonymous when the cookie is missing, unknown, or expired, and when the
    session outlived its user row. Store failures propagate.
    """

    def __init__(self, authenticator: RequestAuthenticator, auth_service: AuthService) -> None:
        self._authenticator = authenticator
        self._auth_service = auth_service

    async def authenticate(
        self,
        conn: HTTPConnection,
    ) -> tuple[AuthCredentials, AuthenticatedUser] | None:
        session = await self._authenticator.authenticate_request(conn.cookies)
        if session is None:
            return None

        user = await self._auth_service.get_user(session.user_id)
        if user is None:
            return None

        return AuthCredentials(["authenticated"]), AuthenticatedUser(
            user_id=user.user_id,
            username=user.username or user.email,
            session=session,
            role=user.role,
        )
