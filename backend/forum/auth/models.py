"""User model for Starlette AuthenticationMiddleware integration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import BaseUser

from shared.auth.models import Role

if TYPE_CHECKING:
    from shared.auth.models import AuthSession


class AuthenticatedUser(BaseUser):
    """Authenticated user for Starlette's request.user.

    Created by the auth backend from a validated session cookie. Carries
    the refreshed session so the response can re-issue the cookie with
    the new expiry.
    """

    def __init__(
        self,
        user_id: int,
        username: str,
        session: AuthSession,
        role: Role = Role.USER,
    ) -> None:
        self._user_id = user_id
        self._username = username
        self._session = session
        self._role = role

    @property
    def is_authenticated(self) -> bool:  # pragma: no cover
        return True

    @property
    def display_name(self) -> str:  # pragma: no cover
        return self._username

    @property
    def identity(self) -> str:  # pragma: no cover
        return str(self._user_id)

    @property
    def user_id(self) -> int:
        return self._user_id

    @property
    def username(self) -> str:
        return self._username

    @property
    def role(self) -> Role:
        return self._role

    @property
    def session(self) -> AuthSession:
        return self._session
