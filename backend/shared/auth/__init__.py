"""Identity and session management for the forum."""

from shared.auth.authenticator import SESSION_COOKIE_NAME, RequestAuthenticator
from shared.auth.errors import (
    AlreadyExistsError,
    AuthError,
    BannedError,
    IdentityNotFoundError,
    InvalidCredentialsError,
    SessionExpiredError,
    StateMismatchError,
    StoreError,
    UpstreamError,
    UserNotFoundError,
)
from shared.auth.models import AuthIntent, AuthSession, FederatedIdentity, NewUser, OAuthResult, Provider, Role, User
from shared.auth.oauth import AuthorizationRequest, OAuthBridge, OAuthClient, derive_username
from shared.auth.password import PasswordHasher, get_hasher
from shared.auth.service import AuthService
from shared.auth.session_manager import SessionManager
from shared.auth.settings import AuthSettings

__all__ = [
    "SESSION_COOKIE_NAME",
    "AlreadyExistsError",
    "AuthError",
    "AuthIntent",
    "AuthService",
    "AuthSession",
    "AuthSettings",
    "AuthorizationRequest",
    "BannedError",
    "FederatedIdentity",
    "IdentityNotFoundError",
    "InvalidCredentialsError",
    "NewUser",
    "OAuthBridge",
    "OAuthClient",
    "OAuthResult",
    "PasswordHasher",
    "Provider",
    "RequestAuthenticator",
    "Role",
    "SessionExpiredError",
    "SessionManager",
    "StateMismatchError",
    "StoreError",
    "UpstreamError",
    "User",
    "UserNotFoundError",
    "derive_username",
    "get_hasher",
]
