"""Auth service coordinating registration, login, federated login, and bans."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from shared.auth.errors import (
    AlreadyExistsError,
    AuthError,
    BannedError,
    IdentityNotFoundError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from shared.auth.models import AuthIntent, NewUser, Role
from shared.auth.oauth import derive_username

if TYPE_CHECKING:
    from shared.auth.models import AuthSession, OAuthResult, User
    from shared.auth.password import PasswordHasher
    from shared.auth.session_manager import SessionManager
    from shared.dal.user_repository import UserRepository

logger = structlog.get_logger()

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 72  # bcrypt truncates at 72 bytes

EMAIL_MAX_LENGTH = 254
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthService:
    """Coordinate account registration, login, sessions, and bans."""

    def __init__(
        self,
        user_repo: UserRepository,
        session_manager: SessionManager,
        *,
        password_hasher: PasswordHasher,
    ) -> None:
        self._user_repo = user_repo
        self._sessions = session_manager
        self._hasher = password_hasher

    async def register_local(self, email: str, username: str, password: str, *, role: Role = Role.USER) -> User:
        """Register a new local (password) account."""
        email = _normalize_email(email)
        _validate_email(email)
        _validate_username(username)
        _validate_password(password)
        await self._ensure_email_available(email)
        if await self._user_repo.get_by_username(username) is not None:
            raise AlreadyExistsError(f"Username '{username}' already taken")

        password_hashed = await self._hasher.hash(password)
        user = await self._save_user(NewUser(email=email, username=username, password_hash=password_hashed, role=role))
        logger.info("local account registered", user_id=user.user_id)
        return user

    async def login_local(self, email: str, password: str) -> AuthSession:
        """Check the ban list, then credentials, then create a session."""
        email = _normalize_email(email)
        if await self._user_repo.is_banned(email):
            logger.info("login blocked for banned email")
            raise BannedError("This account has been banned")

        user = await self._user_repo.get_by_email(email)
        if user is None or user.is_federated:
            raise InvalidCredentialsError("Invalid email or password")
        if not await self._hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")
        return await self._sessions.create_session(user.user_id)

    async def complete_federated(self, result: OAuthResult) -> tuple[AuthSession, User]:
        """Register or log in from provider claims, depending on the attempt's intent."""
        email = _normalize_email(result.identity.email)
        if result.intent == AuthIntent.REGISTER:
            await self._ensure_email_available(email)
            username = derive_username(result.identity.display_name, email)
            user = await self._save_user(NewUser(email=email, username=username, password_hash=None))
            logger.info("federated account registered", user_id=user.user_id, provider=result.provider)
        else:
            user = await self._user_repo.get_by_email(email)
            if user is None or not user.is_federated:
                raise IdentityNotFoundError("No account found for this email. Please register first.")

        session = await self._sessions.create_session(user.user_id)
        return session, user

    async def validate_session(self, token: str | None) -> AuthSession | None:
        """Return the refreshed session, None for no token or an unknown token.

        Raises SessionExpiredError for a stale token.
        """
        if not token:
            return None
        return await self._sessions.validate(token)

    async def create_session(self, user_id: int) -> AuthSession:
        return await self._sessions.create_session(user_id)

    async def logout(self, token: str) -> None:
        await self._sessions.invalidate(token)

    async def get_user(self, user_id: int) -> User | None:
        return await self._user_repo.get_by_id(user_id)

    async def is_admin(self, user_id: int) -> bool:
        """Absent users are never admins."""
        user = await self._user_repo.get_by_id(user_id)
        return user is not None and user.role == Role.ADMIN

    async def is_banned(self, email: str) -> bool:
        return await self._user_repo.is_banned(_normalize_email(email))

    async def ban_user(self, user_id: int) -> User:
        """Delete the user and ban their email atomically."""
        user = await self._user_repo.delete_and_ban(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def ensure_admin(self, email: str, username: str, password: str) -> User | None:
        """Create the bootstrap admin account when the store has no admin yet."""
        if await self._user_repo.count_admins() > 0:
            return None
        user = await self.register_local(email, username, password, role=Role.ADMIN)
        logger.info("bootstrap admin created", user_id=user.user_id)
        return user

    # -- private helpers --

    async def _ensure_email_available(self, email: str) -> None:
        """Raise AlreadyExistsError if the email is registered by any method."""
        if await self._user_repo.get_by_email(email) is not None:
            raise AlreadyExistsError("This email is already registered")

    async def _save_user(self, user: NewUser) -> User:
        """Persist a user via the repository, wrapping ValueError into AlreadyExistsError."""
        try:
            return await self._user_repo.create_user(user)
        except ValueError as e:
            raise AlreadyExistsError(str(e)) from e


def _normalize_email(email: str) -> str:
    return email.strip()


def _validate_email(email: str) -> None:
    if not email or len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
        raise AuthError("Invalid email address")


def _validate_username(username: str) -> None:
    """Validate username: 3-30 chars, alphanumeric + underscores."""
    if len(username) < USERNAME_MIN_LENGTH or len(username) > USERNAME_MAX_LENGTH:
        raise AuthError(f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters")
    if not USERNAME_PATTERN.match(username):
        raise AuthError("Username must contain only letters, numbers, and underscores")


def _validate_password(password: str) -> None:
    """Validate password: 6-72 chars, max 72 UTF-8 bytes (bcrypt limit)."""
    if len(password) < PASSWORD_MIN_LENGTH or len(password) > PASSWORD_MAX_LENGTH:
        raise AuthError(f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise AuthError(f"Password must not exceed {PASSWORD_MAX_LENGTH} bytes when encoded")
