"""Exception taxonomy for authentication, sessions, and the credential store.

Lookups never raise for a missing row: they return None and callers
treat the request as anonymous. Only admin actions raise UserNotFoundError.
"""


class AuthError(Exception):
    """Authentication or authorization failure."""


class SessionExpiredError(AuthError):
    """The session token exists but its expiry has passed."""


class StateMismatchError(AuthError):
    """The OAuth callback state does not match the state issued for this attempt."""


class AlreadyExistsError(AuthError):
    """Registration collides with an existing email or username."""


class BannedError(AuthError):
    """The email is on the ban list."""


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password."""


class IdentityNotFoundError(AuthError):
    """A federated login resolved to an email with no matching account."""


class UserNotFoundError(AuthError):
    """An admin action targeted a user that does not exist."""


class UpstreamError(AuthError):
    """An identity provider token exchange or profile fetch failed."""


class StoreError(Exception):
    """Persistence I/O failure in the credential or session store."""
