"""Home and profile endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse, RedirectResponse

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from shared.auth.service import AuthService


async def home(request: Request) -> Response:
    """GET / - report who the caller is; anonymous callers get nulls."""
    user = request.user
    if not user.is_authenticated:
        return JSONResponse({"authenticated": False, "username": None})
    return JSONResponse({"authenticated": True, "username": user.username})


async def my_profile(request: Request) -> Response:
    """GET /myprofil - the logged-in user's account record."""
    auth_service: AuthService = request.app.state.auth_service
    user = await auth_service.get_user(request.user.user_id)
    if user is None:  # pragma: no cover - the auth backend already resolved this user
        return RedirectResponse("/login", status_code=303)
    return JSONResponse(
        {
            "user_id": user.user_id,
            "email": user.email,
            "username": user.username,
            "role": user.role.value,
        },
    )
