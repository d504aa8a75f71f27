"""OAuth endpoints: provider redirects and callbacks for Google, GitHub, and Facebook."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.responses import JSONResponse, RedirectResponse

from forum.auth.cookies import (
    OAUTH_STATE_COOKIE_NAME,
    clear_oauth_state_cookie,
    set_oauth_state_cookie,
    set_session_cookie,
)
from shared.auth.errors import AlreadyExistsError, IdentityNotFoundError, StateMismatchError, UpstreamError
from shared.auth.models import AuthIntent, Provider

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from shared.auth.oauth import OAuthBridge, OAuthClient
    from shared.auth.service import AuthService

logger = structlog.get_logger()


def _resolve_client(request: Request) -> OAuthClient | None:
    """Return the configured client for the {provider} path segment."""
    bridge: OAuthBridge = request.app.state.oauth_bridge
    try:
        provider = Provider(request.path_params["provider"])
    except ValueError:
        return None
    return bridge.get(provider)


def _provider_not_found() -> JSONResponse:
    return JSONResponse({"error": "Unknown or disabled provider"}, status_code=404)


def _start(request: Request, intent: AuthIntent) -> Response:
    client = _resolve_client(request)
    if client is None:
        return _provider_not_found()
    authorization = client.build_authorization_url(intent)
    response = RedirectResponse(authorization.url, status_code=307)
    set_oauth_state_cookie(
        response,
        authorization.state,
        cookie_secure=request.app.state.auth_settings.cookie_secure,
    )
    return response


async def oauth_login(request: Request) -> Response:
    """GET /{provider}/login - redirect to the provider to log in."""
    return _start(request, AuthIntent.LOGIN)


async def oauth_register(request: Request) -> Response:
    """GET /{provider}/register - redirect to the provider to create an account."""
    return _start(request, AuthIntent.REGISTER)


async def oauth_callback(request: Request) -> Response:
    """GET /{provider}/callback - verify state, exchange the code, log the user in."""
    client = _resolve_client(request)
    if client is None:
        return _provider_not_found()
    auth_service: AuthService = request.app.state.auth_service

    code = request.query_params.get("code", "")
    presented_state = request.query_params.get("state")
    issued_state = request.cookies.get(OAUTH_STATE_COOKIE_NAME)

    try:
        result = await client.complete_exchange(code, presented_state, issued_state)
    except StateMismatchError:
        logger.warning("oauth state mismatch, treating callback as anonymous", provider=client.provider)
        response = RedirectResponse("/", status_code=303)
        clear_oauth_state_cookie(response)
        return response
    except UpstreamError as e:
        response = JSONResponse({"error": str(e)}, status_code=502)
        clear_oauth_state_cookie(response)
        return response

    try:
        session, _user = await auth_service.complete_federated(result)
    except AlreadyExistsError as e:
        response = JSONResponse({"error": str(e)}, status_code=409)
    except IdentityNotFoundError as e:
        response = JSONResponse({"error": str(e)}, status_code=401)
    else:
        location = "/myprofil" if result.intent == AuthIntent.REGISTER else "/"
        response = RedirectResponse(location, status_code=303)
        set_session_cookie(response, session, cookie_secure=request.app.state.auth_settings.cookie_secure)

    clear_oauth_state_cookie(response)
    return response
