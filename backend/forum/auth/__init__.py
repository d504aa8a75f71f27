"""Forum authentication: Starlette backend, user model, cookies, and route policy."""

from forum.auth.backend import SessionCookieBackend
from forum.auth.models import AuthenticatedUser
from forum.auth.policy import admin_only, protected_html, public_route, validate_route_auth_policy

__all__ = [
    "AuthenticatedUser",
    "SessionCookieBackend",
    "admin_only",
    "protected_html",
    "public_route",
    "validate_route_auth_policy",
]
