"""Admin moderation endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.responses import JSONResponse, RedirectResponse

from forum.server.csrf import validate_csrf
from shared.auth.errors import UserNotFoundError

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from shared.auth.service import AuthService

logger = structlog.get_logger()


async def ban_user(request: Request) -> Response:
    """POST /admin/users/{user_id}/ban - delete the account and ban its email."""
    form = await request.form()
    csrf_error = validate_csrf(request, form)
    if csrf_error:
        return csrf_error

    auth_service: AuthService = request.app.state.auth_service
    user_id: int = request.path_params["user_id"]
    try:
        banned = await auth_service.ban_user(user_id)
    except UserNotFoundError as e:
        return JSONResponse({"error": str(e)}, status_code=404)

    logger.info("admin banned user", admin_id=request.user.user_id, user_id=banned.user_id)
    return RedirectResponse("/", status_code=303)
