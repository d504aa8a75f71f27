"""CSRF protection helpers using the double-submit cookie pattern.

GET on the login and register endpoints hands out the token; every
state-changing form POST must echo it in the ``csrf_token`` field.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

if TYPE_CHECKING:
    from starlette.datastructures import FormData
    from starlette.requests import Request
    from starlette.responses import Response

CSRF_COOKIE_NAME = "csrf_token"
CSRF_FORM_FIELD = "csrf_token"


def get_or_create_csrf_token(request: Request) -> tuple[str, bool]:
    """Return the CSRF token from the cookie, or generate a new one.

    Returns (token, is_new) where is_new indicates a cookie must be set.
    """
    token = request.cookies.get(CSRF_COOKIE_NAME)
    if token:
        return token, False
    return secrets.token_urlsafe(32), True


def set_csrf_cookie(response: Response, token: str, *, cookie_secure: bool) -> None:
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=cookie_secure,
        path="/",
    )


def csrf_token_response(request: Request) -> Response:
    """Return the caller's CSRF token as JSON, setting the cookie when new."""
    token, is_new = get_or_create_csrf_token(request)
    response = JSONResponse({"csrf_token": token})
    if is_new:
        set_csrf_cookie(response, token, cookie_secure=request.app.state.auth_settings.cookie_secure)
    return response


def validate_csrf(request: Request, form_data: FormData) -> JSONResponse | None:
    """Check that the form CSRF token matches the cookie token.

    Returns a 403 response on failure, or None if the token is valid.
    """
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME)
    form_token = form_data.get(CSRF_FORM_FIELD)
    if not cookie_token or not form_token or not isinstance(form_token, str):
        return JSONResponse({"error": "CSRF validation failed"}, status_code=403)

    if not secrets.compare_digest(cookie_token, form_token):
        return JSONResponse({"error": "CSRF validation failed"}, status_code=403)

    return None
