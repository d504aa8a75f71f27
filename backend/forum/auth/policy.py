"""Route auth policy helpers for fail-closed authorization.

Each helper wraps a route endpoint and sets the ``AUTH_POLICY_ATTR`` marker
so that startup validation can verify every route has an explicit auth policy.
"""

from __future__ import annotations

import functools
import inspect
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from starlette.authentication import has_required_scope
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Mount, Route

if TYPE_CHECKING:
    import re
    from collections.abc import Callable
    from typing import Any

    from starlette.requests import Request
    from starlette.routing import BaseRoute

AUTH_POLICY_ATTR = "__auth_policy__"


def _require_async(endpoint: Callable[..., Any], policy: str) -> None:
    if not inspect.iscoroutinefunction(endpoint):
        raise TypeError(f"{policy} requires an async endpoint, got {endpoint!r}")


def _login_redirect(request: Request) -> RedirectResponse:
    """Build a relative redirect to the login page preserving the original path."""
    next_path = request.url.path
    if request.url.query:
        next_path = f"{next_path}?{request.url.query}"
    login_url = f"/login?{urlencode({'next': next_path})}"
    return RedirectResponse(url=login_url, status_code=303)


def protected_html(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Require authentication; redirect unauthenticated users to login.

    Uses relative redirect URLs so the Host header cannot turn the login
    redirect into an open redirect.
    """
    _require_async(endpoint, "protected_html")

    @functools.wraps(endpoint)
    async def async_wrapper(request: Request, **kwargs: str) -> Response:
        if not has_required_scope(request, ["authenticated"]):
            return _login_redirect(request)
        return await endpoint(request, **kwargs)

    setattr(async_wrapper, AUTH_POLICY_ATTR, "protected_html")
    return async_wrapper


def admin_only(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Require an authenticated admin. Async endpoints only.

    Returns 401 (via HTTPException) when unauthenticated and 403 JSON when
    the caller is not an admin. The role is read from the store on every
    call, so a demotion takes effect on the next request.
    """
    _require_async(endpoint, "admin_only")

    @functools.wraps(endpoint)
    async def async_wrapper(request: Request, **kwargs: str) -> Response:
        if not has_required_scope(request, ["authenticated"]):
            raise HTTPException(status_code=401)
        authenticator = request.app.state.authenticator
        if not await authenticator.is_admin(request.user.user_id):
            return JSONResponse({"error": "Admin access required"}, status_code=403)
        return await endpoint(request, **kwargs)

    setattr(async_wrapper, AUTH_POLICY_ATTR, "admin_only")
    return async_wrapper


def public_route(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Mark endpoint as explicitly public (no auth required).

    Returns a thin wrapper so the marker lives on the wrapper, not on the
    original callable, and reusing the bare function on another route
    does not leak the policy.
    """
    _require_async(endpoint, "public_route")

    @functools.wraps(endpoint)
    async def async_wrapper(request: Request, **kwargs: str) -> Response:
        return await endpoint(request, **kwargs)

    setattr(async_wrapper, AUTH_POLICY_ATTR, "public")
    return async_wrapper


def collect_admin_paths(routes: list[BaseRoute]) -> list[re.Pattern[str]]:
    """Return path patterns for routes marked ``admin_only``.

    Parameterized routes such as ``/admin/users/{user_id:int}/ban`` match
    any concrete request path they would route.
    """
    return [
        route.path_regex
        for route in routes
        if isinstance(route, Route) and getattr(route.endpoint, AUTH_POLICY_ATTR, None) == "admin_only"
    ]


def validate_route_auth_policy(routes: list[BaseRoute]) -> None:
    """Verify every Route has an auth policy marker. Mount routes are exempt.

    Raises RuntimeError listing all unclassified routes if any are found.
    """
    unclassified: list[str] = []
    for route in routes:
        if isinstance(route, Mount):
            continue
        if isinstance(route, Route) and not hasattr(route.endpoint, AUTH_POLICY_ATTR):
            name = route.name or getattr(route.endpoint, "__name__", "unknown")
            unclassified.append(f"{route.path} ({name})")

    if unclassified:
        details = ", ".join(unclassified)
        msg = f"Unclassified routes missing auth policy: {details}"
        raise RuntimeError(msg)
