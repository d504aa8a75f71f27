"""Request authenticator: resolve who is making a request and whether they are an admin."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from shared.auth.errors import SessionExpiredError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from shared.auth.models import AuthSession
    from shared.auth.service import AuthService

SESSION_COOKIE_NAME = "session_token"

logger = structlog.get_logger()


class RequestAuthenticator:
    """Thin facade used by the HTTP layer before any handler runs."""

    def __init__(self, auth_service: AuthService) -> None:
        self._auth_service = auth_service

    async def authenticate_request(self, cookies: Mapping[str, str]) -> AuthSession | None:
        """Return the caller's refreshed session, or None for anonymous callers.

        Missing, unknown, and expired tokens all resolve to anonymous.
        Store failures propagate.
        """
        token = cookies.get(SESSION_COOKIE_NAME)
        if not token:
            return None
        try:
            return await self._auth_service.validate_session(token)
        except SessionExpiredError:
            logger.debug("expired session presented, treating request as anonymous")
            return None

    async def is_admin(self, user_id: int) -> bool:
        return await self._auth_service.is_admin(user_id)

    async def is_banned(self, email: str) -> bool:
        return await self._auth_service.is_banned(email)
