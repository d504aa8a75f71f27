"""Tests for AuthService."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from shared.auth.errors import (
    AlreadyExistsError,
    AuthError,
    BannedError,
    IdentityNotFoundError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from shared.auth.models import AuthIntent, FederatedIdentity, OAuthResult, Provider, Role


def _oauth_result(
    email: str = "carol@example.com",
    name: str = "Carol Smith",
    intent: AuthIntent = AuthIntent.REGISTER,
) -> OAuthResult:
    return OAuthResult(
        provider=Provider.GOOGLE,
        intent=intent,
        identity=FederatedIdentity(email=email, display_name=name),
    )


class TestRegisterLocal:
    async def test_registers_local_account(self, auth_service):
        user = await auth_service.register_local("a@x.com", "alice", "secret1")

        assert user.email == "a@x.com"
        assert user.username == "alice"
        assert user.role == Role.USER
        assert user.password_hash is not None
        assert user.password_hash != "secret1"

    async def test_rejects_duplicate_email(self, auth_service):
        await auth_service.register_local("a@x.com", "alice", "secret1")

        with pytest.raises(AlreadyExistsError, match="already registered"):
            await auth_service.register_local("a@x.com", "bob", "secret2")

    async def test_rejects_email_taken_by_federated_account(self, auth_service):
        await auth_service.complete_federated(_oauth_result(email="a@x.com"))

        with pytest.raises(AlreadyExistsError):
            await auth_service.register_local("a@x.com", "alice", "secret1")

    async def test_rejects_duplicate_username_case_insensitive(self, auth_service):
        await auth_service.register_local("a@x.com", "alice", "secret1")

        with pytest.raises(AlreadyExistsError, match="already taken"):
            await auth_service.register_local("b@x.com", "Alice", "secret2")

    async def test_rejects_invalid_email(self, auth_service):
        with pytest.raises(AuthError, match="Invalid email"):
            await auth_service.register_local("not-an-email", "alice", "secret1")

    async def test_rejects_short_username(self, auth_service):
        with pytest.raises(AuthError, match="between"):
            await auth_service.register_local("a@x.com", "ab", "secret1")

    async def test_rejects_username_with_special_chars(self, auth_service):
        with pytest.raises(AuthError, match="letters, numbers, and underscores"):
            await auth_service.register_local("a@x.com", "alice!", "secret1")

    async def test_rejects_short_password(self, auth_service):
        with pytest.raises(AuthError, match="between"):
            await auth_service.register_local("a@x.com", "alice", "short")

    async def test_rejects_multibyte_password_exceeding_72_bytes(self, auth_service):
        # 25 CJK characters = 25 chars but 75 UTF-8 bytes, exceeding bcrypt's 72-byte limit
        with pytest.raises(AuthError, match="bytes"):
            await auth_service.register_local("a@x.com", "alice", "あ" * 25)

    async def test_repo_valueerror_becomes_already_exists(self, auth_service):
        """A concurrent insert that wins the race surfaces as AlreadyExistsError."""
        error = ValueError("Email 'race@x.com' is already registered")
        with (
            patch.object(auth_service._user_repo, "create_user", new_callable=AsyncMock, side_effect=error),
            pytest.raises(AlreadyExistsError, match="already registered"),
        ):
            await auth_service.register_local("race@x.com", "racer", "secret1")


class TestLoginLocal:
    async def test_login_success_creates_session(self, auth_service, clock):
        user = await auth_service.register_local("a@x.com", "alice", "secret1")
        session = await auth_service.login_local("a@x.com", "secret1")

        assert session.user_id == user.user_id
        assert session.expires_at == clock.now + 600

    async def test_wrong_password(self, auth_service):
        await auth_service.register_local("a@x.com", "alice", "secret1")

        with pytest.raises(InvalidCredentialsError, match="Invalid email or password"):
            await auth_service.login_local("a@x.com", "wrong-one")

    async def test_unknown_email(self, auth_service):
        with pytest.raises(InvalidCredentialsError, match="Invalid email or password"):
            await auth_service.login_local("nobody@x.com", "secret1")

    async def test_federated_account_cannot_log_in_with_password(self, auth_service):
        await auth_service.complete_federated(_oauth_result(email="a@x.com"))

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login_local("a@x.com", "")

    async def test_banned_email_rejected_even_with_correct_password(self, auth_service):
        user = await auth_service.register_local("a@x.com", "alice", "secret1")
        await auth_service.ban_user(user.user_id)

        with pytest.raises(BannedError):
            await auth_service.login_local("a@x.com", "secret1")

    async def test_second_login_evicts_first_session(self, auth_service):
        await auth_service.register_local("a@x.com", "alice", "secret1")
        first = await auth_service.login_local("a@x.com", "secret1")
        second = await auth_service.login_local("a@x.com", "secret1")

        assert await auth_service.validate_session(first.token) is None
        assert await auth_service.validate_session(second.token) is not None


class TestCompleteFederated:
    async def test_register_creates_account_without_password(self, auth_service):
        session, user = await auth_service.complete_federated(_oauth_result())

        assert user.email == "carol@example.com"
        assert user.is_federated
        assert user.username is not None
        assert user.username.startswith("carolsmith_")
        assert session.user_id == user.user_id

    async def test_register_rejects_existing_email(self, auth_service):
        await auth_service.register_local("carol@example.com", "carol", "secret1")

        with pytest.raises(AlreadyExistsError, match="already registered"):
            await auth_service.complete_federated(_oauth_result())

    async def test_login_after_register(self, auth_service):
        _, registered = await auth_service.complete_federated(_oauth_result())
        session, user = await auth_service.complete_federated(_oauth_result(intent=AuthIntent.LOGIN))

        assert user.user_id == registered.user_id
        assert session.user_id == registered.user_id

    async def test_login_unknown_email(self, auth_service):
        with pytest.raises(IdentityNotFoundError, match="Please register first"):
            await auth_service.complete_federated(_oauth_result(intent=AuthIntent.LOGIN))

    async def test_login_does_not_resolve_local_account(self, auth_service):
        await auth_service.register_local("carol@example.com", "carol", "secret1")

        with pytest.raises(IdentityNotFoundError):
            await auth_service.complete_federated(_oauth_result(intent=AuthIntent.LOGIN))


class TestValidateSession:
    async def test_returns_none_for_none(self, auth_service):
        assert await auth_service.validate_session(None) is None

    async def test_returns_none_for_unknown_token(self, auth_service):
        assert await auth_service.validate_session("nonexistent") is None

    async def test_logout_destroys_session(self, auth_service):
        await auth_service.register_local("a@x.com", "alice", "secret1")
        session = await auth_service.login_local("a@x.com", "secret1")

        await auth_service.logout(session.token)
        assert await auth_service.validate_session(session.token) is None

    async def test_logout_unknown_session_is_safe(self, auth_service):
        await auth_service.logout("nonexistent")


class TestRolesAndBans:
    async def test_is_admin(self, auth_service):
        admin = await auth_service.register_local("root@x.com", "root", "secret1", role=Role.ADMIN)
        user = await auth_service.register_local("a@x.com", "alice", "secret1")

        assert await auth_service.is_admin(admin.user_id) is True
        assert await auth_service.is_admin(user.user_id) is False
        assert await auth_service.is_admin(9999) is False

    async def test_ban_user_deletes_user_and_sessions(self, auth_service):
        user = await auth_service.register_local("a@x.com", "alice", "secret1")
        session = await auth_service.login_local("a@x.com", "secret1")

        banned = await auth_service.ban_user(user.user_id)

        assert banned.email == "a@x.com"
        assert await auth_service.get_user(user.user_id) is None
        assert await auth_service.validate_session(session.token) is None
        assert await auth_service.is_banned("a@x.com") is True

    async def test_ban_unknown_user(self, auth_service):
        with pytest.raises(UserNotFoundError):
            await auth_service.ban_user(9999)

    async def test_is_banned_ignores_surrounding_whitespace(self, auth_service):
        user = await auth_service.register_local("a@x.com", "alice", "secret1")
        await auth_service.ban_user(user.user_id)

        assert await auth_service.is_banned("  a@x.com ") is True

    async def test_banned_email_can_still_register_again(self, auth_service):
        """The ban list only blocks local login; it is not a registration filter."""
        user = await auth_service.register_local("a@x.com", "alice", "secret1")
        await auth_service.ban_user(user.user_id)

        again = await auth_service.register_local("a@x.com", "alice2", "secret1")
        assert again.user_id != user.user_id
        with pytest.raises(BannedError):
            await auth_service.login_local("a@x.com", "secret1")


class TestEnsureAdmin:
    async def test_creates_admin_when_none_exists(self, auth_service):
        admin = await auth_service.ensure_admin("root@x.com", "root", "secret1")

        assert admin is not None
        assert admin.role == Role.ADMIN

    async def test_noop_when_admin_exists(self, auth_service):
        await auth_service.ensure_admin("root@x.com", "root", "secret1")

        assert await auth_service.ensure_admin("other@x.com", "other", "secret1") is None
