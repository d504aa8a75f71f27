"""Session manager: issue, validate, refresh, and invalidate session tokens.

Enforces the single-session rule: creating or refreshing a session deletes
every other session of the same user. The store is the source of truth;
nothing is cached between requests.
"""

from __future__ import annotations

import asyncio
import contextlib
import secrets
import time
from typing import TYPE_CHECKING

import structlog

from shared.auth.errors import SessionExpiredError
from shared.auth.models import AuthSession

if TYPE_CHECKING:
    from collections.abc import Callable

    from shared.dal.session_repository import SessionRepository

CLEANUP_INTERVAL_SECONDS = 300  # 5 minutes
DEFAULT_SESSION_TTL_SECONDS = 600  # 10 minutes, sliding
TOKEN_BYTES = 32

logger = structlog.get_logger()


class SessionManager:
    """Store-backed session lifecycle with a sliding expiry.

    Call start_cleanup() on app startup and stop_cleanup() on shutdown to
    purge rows nobody presents again.
    """

    def __init__(
        self,
        session_repo: SessionRepository,
        *,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._repo = session_repo
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._cleanup_task: asyncio.Task[None] | None = None

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    async def create_session(self, user_id: int) -> AuthSession:
        """Mint a token for user_id and evict the user's other sessions atomically."""
        session = AuthSession(
            token=secrets.token_urlsafe(TOKEN_BYTES),
            user_id=user_id,
            expires_at=self._clock() + self._ttl_seconds,
        )
        await self._repo.replace_for_user(session)
        logger.info("session created", user_id=user_id)
        return session

    async def validate(self, token: str) -> AuthSession | None:
        """Return the refreshed session, None for an unknown token.

        Raises SessionExpiredError when the token exists but has expired;
        the stale row is removed before raising.
        """
        session = await self._repo.get(token)
        if session is None:
            return None

        now = self._clock()
        if session.expires_at <= now:
            await self._repo.delete(token)
            logger.debug("session expired", user_id=session.user_id)
            raise SessionExpiredError("Session expired")

        new_expiry = now + self._ttl_seconds
        if not await self._repo.refresh(token, session.user_id, new_expiry):
            # Superseded or logged out between the read and the refresh.
            return None
        session.expires_at = new_expiry
        return session

    async def invalidate(self, token: str) -> None:
        """Remove a session (logout). Unknown tokens are ignored."""
        await self._repo.delete(token)

    async def cleanup_expired(self) -> int:
        """Remove all expired sessions. Return count of removed sessions."""
        removed = await self._repo.delete_expired(self._clock())
        if removed:
            logger.info("cleaned up expired sessions", count=removed)
        return removed

    def start_cleanup(self) -> None:
        """Start the periodic cleanup background task."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def stop_cleanup(self) -> None:
        """Stop the periodic cleanup background task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cleanup_task
            self._cleanup_task = None

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
            try:
                await self.cleanup_expired()
            except Exception:
                logger.exception("session cleanup failed")
