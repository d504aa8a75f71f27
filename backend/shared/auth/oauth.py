"""OAuth bridge: authorization redirects and code exchange for Google, GitHub, and Facebook.

Each provider client builds its authorization URL with a freshly signed
state, and on callback checks that state before exchanging the code for
an access token and fetching the user's email and display name.
No call is retried; any provider failure surfaces as UpstreamError.
"""

from __future__ import annotations

import hmac
import re
import secrets
import string
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar
from urllib.parse import urlencode

import httpx
import structlog

from shared.auth.errors import StateMismatchError, UpstreamError
from shared.auth.models import AuthIntent, FederatedIdentity, OAuthResult, Provider
from shared.auth.oauth_state import create_signed_state, verify_state

if TYPE_CHECKING:
    from shared.auth.settings import AuthSettings

logger = structlog.get_logger()

USERNAME_SUFFIX_LENGTH = 5
_USERNAME_SUFFIX_ALPHABET = string.ascii_letters + string.digits
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ProviderEndpoints:
    authorize_url: str
    token_url: str
    userinfo_url: str
    scopes: tuple[str, ...]
    extra_auth_params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AuthorizationRequest:
    """Where to send the browser, and the state to remember in its cookie."""

    url: str
    state: str


class OAuthClient:
    """Authorization-code flow for one provider.

    Subclasses set ``provider`` and ``endpoints`` and may override
    ``_fetch_identity`` when the profile needs more than one call.
    """

    provider: ClassVar[Provider]
    endpoints: ClassVar[ProviderEndpoints]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        state_secret: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_url = redirect_url
        self._state_secret = state_secret
        self._timeout = timeout
        self._transport = transport

    def build_authorization_url(self, intent: AuthIntent) -> AuthorizationRequest:
        state = create_signed_state(self.provider, intent, self._state_secret)
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_url,
            "response_type": "code",
            "scope": " ".join(self.endpoints.scopes),
            "state": state,
            **self.endpoints.extra_auth_params,
        }
        return AuthorizationRequest(url=f"{self.endpoints.authorize_url}?{urlencode(params)}", state=state)

    async def complete_exchange(
        self,
        code: str,
        presented_state: str | None,
        issued_state: str | None,
    ) -> OAuthResult:
        """Verify the callback state, then exchange the code for identity claims.

        ``presented_state`` is the state query parameter from the provider
        callback; ``issued_state`` is the copy the browser kept in its cookie.
        """
        intent = self._check_state(presented_state, issued_state)
        if not code:
            raise UpstreamError(f"{self.provider.value} callback carried no authorization code")

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            access_token = await self._exchange_code(client, code)
            identity = await self._fetch_identity(client, access_token)

        if not identity.email:
            raise UpstreamError(f"{self.provider.value} did not return an email address")
        logger.info("oauth exchange completed", provider=self.provider, intent=intent)
        return OAuthResult(provider=self.provider, intent=intent, identity=identity)

    def _check_state(self, presented_state: str | None, issued_state: str | None) -> AuthIntent:
        if not presented_state or not issued_state:
            raise StateMismatchError("OAuth state missing")
        if not hmac.compare_digest(presented_state.encode(), issued_state.encode()):
            raise StateMismatchError("OAuth state does not match the issued state")
        state = verify_state(issued_state, self._state_secret)
        if state is None or state.provider != self.provider.value:
            raise StateMismatchError("OAuth state is invalid or expired")
        return AuthIntent(state.intent)

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> str:
        data = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "code": code,
            "redirect_uri": self._redirect_url,
            "grant_type": "authorization_code",
        }
        body = await self._request_json(client, "POST", self.endpoints.token_url, data=data)
        access_token = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(access_token, str) or not access_token:
            raise UpstreamError(f"{self.provider.value} token exchange returned no access token")
        return access_token

    async def _fetch_identity(self, client: httpx.AsyncClient, access_token: str) -> FederatedIdentity:
        body = await self._get_authorized(client, self.endpoints.userinfo_url, access_token)
        return _identity_from_profile(body)

    async def _get_authorized(self, client: httpx.AsyncClient, url: str, access_token: str) -> Any:  # noqa: ANN401
        return await self._request_json(client, "GET", url, headers={"Authorization": f"Bearer {access_token}"})

    async def _request_json(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,  # noqa: ANN401
    ) -> Any:  # noqa: ANN401
        headers = {"Accept": "application/json", **kwargs.pop("headers", {})}
        try:
            response = await client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as exc:
            logger.warning("oauth provider request failed", provider=self.provider, url=url, error=str(exc))
            raise UpstreamError(f"{self.provider.value} request failed") from exc
        except ValueError as exc:
            logger.warning("oauth provider returned malformed JSON", provider=self.provider, url=url)
            raise UpstreamError(f"{self.provider.value} returned a malformed response") from exc


class GoogleOAuthClient(OAuthClient):
    provider = Provider.GOOGLE
    endpoints = ProviderEndpoints(
        authorize_url="https://accounts.google.com/o/oauth2/auth",
        token_url="https://oauth2.googleapis.com/token",  # noqa: S106
        userinfo_url="https://www.googleapis.com/oauth2/v2/userinfo",
        scopes=(
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
        ),
        extra_auth_params={"access_type": "offline", "prompt": "consent"},
    )


class GitHubOAuthClient(OAuthClient):
    """GitHub hides private emails from /user; fall back to /user/emails."""

    provider = Provider.GITHUB
    endpoints = ProviderEndpoints(
        authorize_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",  # noqa: S106
        userinfo_url="https://api.github.com/user",
        scopes=("user:email",),
    )
    emails_url = "https://api.github.com/user/emails"

    async def _fetch_identity(self, client: httpx.AsyncClient, access_token: str) -> FederatedIdentity:
        profile = await self._get_authorized(client, self.endpoints.userinfo_url, access_token)
        identity = _identity_from_profile(profile)
        if identity.email:
            return identity

        emails = await self._get_authorized(client, self.emails_url, access_token)
        if not isinstance(emails, list):
            raise UpstreamError("github returned a malformed email list")
        primary = next(
            (
                e.get("email")
                for e in emails
                if isinstance(e, dict) and e.get("primary") is True and e.get("verified") is True
            ),
            None,
        )
        return FederatedIdentity(email=primary or "", display_name=identity.display_name)


class FacebookOAuthClient(OAuthClient):
    provider = Provider.FACEBOOK
    endpoints = ProviderEndpoints(
        authorize_url="https://www.facebook.com/v3.2/dialog/oauth",
        token_url="https://graph.facebook.com/v3.2/oauth/access_token",  # noqa: S106
        userinfo_url="https://graph.facebook.com/me?fields=id,name,email",
        scopes=("email",),
    )


_CLIENT_CLASSES: dict[Provider, type[OAuthClient]] = {
    Provider.GOOGLE: GoogleOAuthClient,
    Provider.GITHUB: GitHubOAuthClient,
    Provider.FACEBOOK: FacebookOAuthClient,
}


class OAuthBridge:
    """Registry of the configured provider clients."""

    def __init__(self, clients: dict[Provider, OAuthClient]) -> None:
        self._clients = clients

    @classmethod
    def from_settings(
        cls,
        settings: AuthSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> OAuthBridge:
        """Build clients for every provider that has a client id and secret."""
        clients: dict[Provider, OAuthClient] = {}
        for provider, client_cls in _CLIENT_CLASSES.items():
            client_id, client_secret = settings.client_credentials(provider)
            if not client_id or not client_secret:
                logger.info("oauth provider disabled, no client credentials", provider=provider)
                continue
            clients[provider] = client_cls(
                client_id,
                client_secret,
                settings.redirect_url(provider),
                settings.oauth_state_secret,
                timeout=settings.oauth_timeout_seconds,
                transport=transport,
            )
        return cls(clients)

    def get(self, provider: Provider) -> OAuthClient | None:
        return self._clients.get(provider)

    @property
    def enabled_providers(self) -> list[Provider]:
        return list(self._clients)


def derive_username(display_name: str, email: str) -> str:
    """Lower-cased display name without whitespace, plus a random suffix.

    Falls back to the email local part when the provider gave no name.
    """
    base = _WHITESPACE.sub("", display_name).lower() or email.split("@", 1)[0].lower()
    suffix = "".join(secrets.choice(_USERNAME_SUFFIX_ALPHABET) for _ in range(USERNAME_SUFFIX_LENGTH))
    return f"{base}_{suffix}"


def _identity_from_profile(body: Any) -> FederatedIdentity:  # noqa: ANN401
    if not isinstance(body, dict):
        raise UpstreamError("provider returned a malformed profile")
    email = body.get("email")
    name = body.get("name")
    return FederatedIdentity(
        email=email if isinstance(email, str) else "",
        display_name=name if isinstance(name, str) else "",
    )
