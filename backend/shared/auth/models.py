"""User account, session, and OAuth models for authentication."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, model_validator


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"


class Provider(StrEnum):
    GOOGLE = "google"
    GITHUB = "github"
    FACEBOOK = "facebook"


class AuthIntent(StrEnum):
    LOGIN = "login"
    REGISTER = "register"


class NewUser(BaseModel, frozen=True):
    """User record before the store has assigned an id."""

    email: str
    username: str | None = None  # None only while an OAuth registration is incomplete
    password_hash: str | None = None  # None for federated accounts
    role: Role = Role.USER

    @model_validator(mode="after")
    def _validate_fields(self) -> Self:
        if not self.email:
            raise ValueError("Email is required")
        if self.password_hash is not None and not self.password_hash:
            raise ValueError("Local accounts must have a non-empty password hash")
        return self


class User(NewUser, frozen=True):
    """User account stored in the user repository."""

    user_id: int

    @property
    def is_federated(self) -> bool:
        return self.password_hash is None


@dataclass
class AuthSession:
    """Server-side session row for an authenticated user."""

    token: str  # opaque, stored in the session_token cookie
    user_id: int
    expires_at: float  # epoch seconds


@dataclass(frozen=True)
class FederatedIdentity:
    """Identity claims returned by an OAuth provider."""

    email: str
    display_name: str


@dataclass(frozen=True)
class OAuthResult:
    """Outcome of a completed OAuth exchange."""

    provider: Provider
    intent: AuthIntent
    identity: FederatedIdentity
