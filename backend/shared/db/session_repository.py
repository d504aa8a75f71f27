"""SQLite-backed session repository enforcing one live session per user."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from shared.auth.models import AuthSession
from shared.dal.session_repository import SessionRepository
from shared.db.connection import store_errors

if TYPE_CHECKING:
    from shared.db.connection import Database


class SqliteSessionRepository(SessionRepository):
    """SQLite implementation of SessionRepository.

    Insert-plus-eviction and refresh-plus-eviction each run inside one
    transaction, so no reader ever sees two sessions for the same user
    committed side by side.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def replace_for_user(self, session: AuthSession) -> None:
        async with self._lock:
            with store_errors("replace_for_user"), self._db.transaction() as conn:
                conn.execute("DELETE FROM sessions WHERE user_id = ?", (session.user_id,))
                conn.execute(
                    "INSERT INTO sessions (id, user_id, expiry) VALUES (?, ?, ?)",
                    (session.token, session.user_id, session.expires_at),
                )

    async def get(self, token: str) -> AuthSession | None:
        with store_errors("get_session"):
            row = self._db.connection.execute(
                "SELECT id, user_id, expiry FROM sessions WHERE id = ?",
                (token,),
            ).fetchone()
        if row is None:
            return None
        return AuthSession(token=row[0], user_id=row[1], expires_at=row[2])

    async def refresh(self, token: str, user_id: int, expires_at: float) -> bool:
        async with self._lock:
            with store_errors("refresh_session"), self._db.transaction() as conn:
                cursor = conn.execute(
                    "UPDATE sessions SET expiry = ? WHERE id = ? AND user_id = ?",
                    (expires_at, token, user_id),
                )
                # A superseded token must not evict the session that replaced it.
                if cursor.rowcount == 0:
                    return False
                conn.execute("DELETE FROM sessions WHERE user_id = ? AND id <> ?", (user_id, token))
        return True

    async def delete(self, token: str) -> None:
        async with self._lock:
            with store_errors("delete_session"):
                self._db.connection.execute("DELETE FROM sessions WHERE id = ?", (token,))

    async def delete_expired(self, now: float) -> int:
        async with self._lock:
            with store_errors("delete_expired_sessions"):
                cursor = self._db.connection.execute("DELETE FROM sessions WHERE expiry <= ?", (now,))
        return cursor.rowcount
