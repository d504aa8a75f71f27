"""Auth settings for the forum: store location, cookies, sessions, and OAuth clients."""

from pydantic import Field
from pydantic_settings import BaseSettings

from shared.auth.models import Provider


class AuthSettings(BaseSettings):
    model_config = {"env_prefix": "AUTH_", "populate_by_name": True}

    # HMAC secret for signing OAuth state tokens -- required, no default.
    # The application fails to start if AUTH_OAUTH_STATE_SECRET is not set.
    oauth_state_secret: str = Field(min_length=1)

    # SQLite database file path
    database_path: str = "backend/forum.db"

    # Cookie Secure flag -- True in production, False for local dev (HTTP)
    cookie_secure: bool = False

    # Sliding session lifetime, extended on every validated request
    session_ttl_seconds: int = Field(default=600, gt=0)

    password_hasher: str = "bcrypt"
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # Base URL the providers redirect back to: {public_base_url}/{provider}/callback
    public_base_url: str = "http://localhost:8065"
    oauth_timeout_seconds: float = Field(default=10.0, gt=0)

    google_client_id: str = ""
    google_client_secret: str = ""
    github_client_id: str = ""
    github_client_secret: str = ""
    facebook_client_id: str = ""
    facebook_client_secret: str = ""

    # Bootstrap admin, created at startup only when no admin exists
    admin_email: str | None = None
    admin_username: str | None = None
    admin_password: str | None = None

    def client_credentials(self, provider: Provider) -> tuple[str, str]:
        """Return (client_id, client_secret) for a provider."""
        return (
            getattr(self, f"{provider.value}_client_id"),
            getattr(self, f"{provider.value}_client_secret"),
        )

    def redirect_url(self, provider: Provider) -> str:
        return f"{self.public_base_url.rstrip('/')}/{provider.value}/callback"
