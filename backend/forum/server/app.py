from __future__ import annotations

import contextlib
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route

from forum.auth.backend import SessionCookieBackend
from forum.auth.middleware import SessionCookieRefreshMiddleware
from forum.auth.policy import (
    admin_only,
    collect_admin_paths,
    protected_html,
    public_route,
    validate_route_auth_policy,
)
from forum.server.middleware import SecurityHeadersMiddleware
from forum.server.settings import ForumServerSettings
from forum.views import (
    ban_user,
    home,
    login,
    login_page,
    logout,
    my_profile,
    oauth_callback,
    oauth_login,
    oauth_register,
    register,
    register_page,
)
from shared.auth import AuthService, OAuthBridge, RequestAuthenticator, SessionManager
from shared.auth.errors import AuthError, StoreError
from shared.auth.password import get_hasher
from shared.auth.settings import AuthSettings
from shared.db import Database, SqliteSessionRepository, SqliteUserRepository
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    import re
    from collections.abc import AsyncGenerator, Awaitable, Callable

    import httpx
    from starlette.requests import Request
    from starlette.responses import Response


def _make_auth_error_handler(
    admin_paths: list[re.Pattern[str]],
) -> Callable[[Request, Exception], Awaitable[Response]]:
    """Build an HTTPException handler that rewrites 401s on admin JSON endpoints."""

    async def _auth_error_handler(request: Request, exc: Exception) -> Response:
        """Rewrite 401 errors on admin endpoints to JSON responses.

        All other HTTP exceptions delegate to Starlette's default behavior
        (plain-text response with the exception detail).
        """
        http_exc = cast("HTTPException", exc)
        if http_exc.status_code == HTTPStatus.UNAUTHORIZED and _is_admin_path(request.url.path, admin_paths):
            return JSONResponse({"error": "Authentication required"}, status_code=HTTPStatus.UNAUTHORIZED)
        return PlainTextResponse(http_exc.detail or "", status_code=http_exc.status_code, headers=http_exc.headers)

    return _auth_error_handler


def _is_admin_path(path: str, patterns: list[re.Pattern[str]]) -> bool:
    return any(pattern.match(path) for pattern in patterns)


async def _store_error_handler(request: Request, exc: Exception) -> Response:
    """Surface store failures as a generic 500 without leaking details."""
    logger.error("store failure while handling request", path=request.url.path, error=str(exc))
    return JSONResponse({"error": "Internal server error"}, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def create_app(
    settings: ForumServerSettings | None = None,
    auth_settings: AuthSettings | None = None,  # required in production (via get_app)
    *,
    oauth_transport: httpx.AsyncBaseTransport | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ForumServerSettings()
    if auth_settings is None:  # pragma: no cover
        auth_settings = AuthSettings()  # type: ignore[call-arg]

    routes = [
        # Protected routes (redirect to login when unauthenticated)
        Route("/myprofil", protected_html(my_profile), methods=["GET"], name="my_profile"),
        # Admin routes (401 when unauthenticated, 403 for non-admins)
        Route("/admin/users/{user_id:int}/ban", admin_only(ban_user), methods=["POST"], name="ban_user"),
        # Public routes
        Route("/", public_route(home), methods=["GET"], name="home"),
        Route("/health", public_route(health), methods=["GET"], name="health"),
        Route("/login", public_route(login_page), methods=["GET"], name="login_page"),
        Route("/login", public_route(login), methods=["POST"], name="login"),
        Route("/register", public_route(register_page), methods=["GET"], name="register_page"),
        Route("/register", public_route(register), methods=["POST"], name="register"),
        Route("/logout", public_route(logout), methods=["POST"], name="logout"),
        Route("/{provider}/login", public_route(oauth_login), methods=["GET"], name="oauth_login"),
        Route("/{provider}/register", public_route(oauth_register), methods=["GET"], name="oauth_register"),
        Route("/{provider}/callback", public_route(oauth_callback), methods=["GET"], name="oauth_callback"),
    ]

    validate_route_auth_policy(routes)
    admin_paths = collect_admin_paths(routes)

    # Initialize database and auth components
    db = Database(auth_settings.database_path)
    db.connect()
    user_repo = SqliteUserRepository(db)
    session_manager = SessionManager(SqliteSessionRepository(db), ttl_seconds=auth_settings.session_ttl_seconds)
    hasher = get_hasher(auth_settings.password_hasher, rounds=auth_settings.bcrypt_rounds)
    auth_service = AuthService(user_repo, session_manager, password_hasher=hasher)
    authenticator = RequestAuthenticator(auth_service)
    oauth_bridge = OAuthBridge.from_settings(auth_settings, transport=oauth_transport)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:
        await _bootstrap_admin(auth_service, auth_settings)
        session_manager.start_cleanup()
        yield
        await session_manager.stop_cleanup()
        db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            HTTPException: _make_auth_error_handler(admin_paths),
            StoreError: _store_error_handler,
        },
    )
    app.add_middleware(SessionCookieRefreshMiddleware, cookie_secure=auth_settings.cookie_secure)  # type: ignore[arg-type]
    app.add_middleware(AuthenticationMiddleware, backend=SessionCookieBackend(authenticator, auth_service))  # type: ignore[arg-type]
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)  # type: ignore[arg-type]
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]

    app.state.db = db
    app.state.settings = settings
    app.state.auth_settings = auth_settings
    app.state.auth_service = auth_service
    app.state.authenticator = authenticator
    app.state.session_manager = session_manager
    app.state.oauth_bridge = oauth_bridge

    logger.info("forum server ready", oauth_providers=[p.value for p in oauth_bridge.enabled_providers])
    return app


async def _bootstrap_admin(auth_service: AuthService, auth_settings: AuthSettings) -> None:
    """Create the configured admin account when the store has no admin."""
    if not (auth_settings.admin_email and auth_settings.admin_username and auth_settings.admin_password):
        return
    try:
        await auth_service.ensure_admin(
            auth_settings.admin_email,
            auth_settings.admin_username,
            auth_settings.admin_password,
        )
    except AuthError as e:
        msg = f"Could not create bootstrap admin: {e}"
        raise RuntimeError(msg) from e


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory forum.server.app:get_app."""
    s = ForumServerSettings()
    auth = AuthSettings()  # type: ignore[call-arg]
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s, auth_settings=auth)
