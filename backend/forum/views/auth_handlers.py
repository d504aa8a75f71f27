"""Local auth endpoints: register, login, and logout."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse, RedirectResponse

from forum.auth.cookies import clear_session_cookie, set_session_cookie
from forum.server.csrf import csrf_token_response, validate_csrf
from shared.auth.authenticator import SESSION_COOKIE_NAME
from shared.auth.errors import AlreadyExistsError, AuthError, BannedError, InvalidCredentialsError

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from shared.auth.models import AuthSession
    from shared.auth.service import AuthService
    from shared.auth.settings import AuthSettings


def redirect_with_session_cookie(session: AuthSession, location: str, auth_settings: AuthSettings) -> Response:
    """Redirect after a successful login and set the session cookie."""
    response = RedirectResponse(location, status_code=303)
    set_session_cookie(response, session, cookie_secure=auth_settings.cookie_secure)
    return response


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def login_page(request: Request) -> Response:
    """GET /login - hand out the CSRF token; logged-in users go home."""
    if request.user.is_authenticated:
        return RedirectResponse("/", status_code=303)
    return csrf_token_response(request)


async def login(request: Request) -> Response:
    """POST /login - validate credentials, set session cookie, redirect home."""
    auth_service: AuthService = request.app.state.auth_service
    form = await request.form()
    csrf_error = validate_csrf(request, form)
    if csrf_error:
        return csrf_error

    email = str(form.get("email", ""))
    password = str(form.get("password", ""))

    try:
        session = await auth_service.login_local(email, password)
    except BannedError as e:
        return _error(str(e), 403)
    except InvalidCredentialsError as e:
        return _error(str(e), 401)
    except AuthError as e:
        return _error(str(e), 400)

    return redirect_with_session_cookie(session, "/", request.app.state.auth_settings)


async def register_page(request: Request) -> Response:
    """GET /register - hand out the CSRF token; logged-in users go home."""
    if request.user.is_authenticated:
        return RedirectResponse("/", status_code=303)
    return csrf_token_response(request)


async def register(request: Request) -> Response:
    """POST /register - create a local account, log in, redirect to the profile."""
    auth_service: AuthService = request.app.state.auth_service
    form = await request.form()
    csrf_error = validate_csrf(request, form)
    if csrf_error:
        return csrf_error

    email = str(form.get("email", ""))
    username = str(form.get("username", ""))
    password = str(form.get("password", ""))
    confirm_password = str(form.get("confirm_password", ""))

    if password != confirm_password:
        return _error("Passwords do not match", 400)

    try:
        user = await auth_service.register_local(email, username, password)
        session = await auth_service.create_session(user.user_id)
    except AlreadyExistsError as e:
        return _error(str(e), 409)
    except AuthError as e:
        return _error(str(e), 400)

    return redirect_with_session_cookie(session, "/myprofil", request.app.state.auth_settings)


async def logout(request: Request) -> Response:
    """POST /logout - destroy the session, clear the cookie, redirect home."""
    auth_service: AuthService = request.app.state.auth_service
    form = await request.form()
    csrf_error = validate_csrf(request, form)
    if csrf_error:
        return csrf_error

    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        await auth_service.logout(token)
    response = RedirectResponse("/", status_code=303)
    clear_session_cookie(response)
    return response
