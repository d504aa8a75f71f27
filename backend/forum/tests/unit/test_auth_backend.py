"""Tests for the SessionCookieBackend authentication backend."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.authentication import AuthCredentials

from forum.auth.backend import SessionCookieBackend
from forum.auth.models import AuthenticatedUser
from shared.auth.authenticator import SESSION_COOKIE_NAME
from shared.auth.errors import StoreError
from shared.auth.models import AuthSession, Role, User

SESSION = AuthSession(token="tok-1", user_id=7, expires_at=1_700_000_600.0)


def _user(username: str | None = "alice", role: Role = Role.USER) -> User:
    return User(user_id=7, email="a@x.com", username=username, password_hash="simple$h", role=role)


def _conn(cookies: dict[str, str]) -> MagicMock:
    conn = MagicMock()
    conn.cookies = cookies
    return conn


@pytest.fixture
def authenticator() -> MagicMock:
    mock = MagicMock()
    mock.authenticate_request = AsyncMock(return_value=SESSION)
    return mock


@pytest.fixture
def auth_service() -> MagicMock:
    mock = MagicMock()
    mock.get_user = AsyncMock(return_value=_user())
    return mock


@pytest.fixture
def backend(authenticator: MagicMock, auth_service: MagicMock) -> SessionCookieBackend:
    return SessionCookieBackend(authenticator, auth_service)


class TestSessionCookieAuth:
    async def test_valid_session_returns_authenticated_tuple(self, backend, authenticator) -> None:
        conn = _conn({SESSION_COOKIE_NAME: "tok-1"})

        result = await backend.authenticate(conn)

        assert result is not None
        creds, user = result
        assert isinstance(creds, AuthCredentials)
        assert "authenticated" in creds.scopes
        assert isinstance(user, AuthenticatedUser)
        assert user.user_id == 7
        assert user.username == "alice"
        assert user.session is SESSION
        authenticator.authenticate_request.assert_awaited_once_with(conn.cookies)

    async def test_carries_role(self, backend, auth_service) -> None:
        auth_service.get_user.return_value = _user(role=Role.ADMIN)

        result = await backend.authenticate(_conn({SESSION_COOKIE_NAME: "tok-1"}))

        assert result is not None
        assert result[1].role == Role.ADMIN

    async def test_falls_back_to_email_without_username(self, backend, auth_service) -> None:
        auth_service.get_user.return_value = _user(username=None)

        result = await backend.authenticate(_conn({SESSION_COOKIE_NAME: "tok-1"}))

        assert result is not None
        assert result[1].username == "a@x.com"

    async def test_anonymous_when_no_session(self, backend, authenticator, auth_service) -> None:
        authenticator.authenticate_request.return_value = None

        assert await backend.authenticate(_conn({})) is None
        auth_service.get_user.assert_not_awaited()

    async def test_anonymous_when_user_row_gone(self, backend, auth_service) -> None:
        auth_service.get_user.return_value = None

        assert await backend.authenticate(_conn({SESSION_COOKIE_NAME: "tok-1"})) is None

    async def test_store_failure_propagates(self, backend, authenticator) -> None:
        authenticator.authenticate_request.side_effect = StoreError("down")

        with pytest.raises(StoreError):
            await backend.authenticate(_conn({SESSION_COOKIE_NAME: "tok-1"}))
