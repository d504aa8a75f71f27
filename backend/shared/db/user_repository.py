"""SQLite-backed user and banned-identity repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.auth.models import Role, User
from shared.dal.user_repository import UserRepository
from shared.db.connection import store_errors

if TYPE_CHECKING:
    from shared.auth.models import NewUser
    from shared.db.connection import Database

logger = structlog.get_logger()

_USER_COLUMNS = "id, email, username, password_hash, role"


def _row_to_user(row: tuple) -> User:
    user_id, email, username, password_hash, role = row
    return User(
        user_id=user_id,
        email=email,
        username=username,
        password_hash=password_hash,
        role=Role(role),
    )


class SqliteUserRepository(UserRepository):
    """SQLite implementation of UserRepository.

    Relies on the unique indexes for email and username instead of
    check-then-insert, and maps IntegrityError to domain ValueError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_user(self, user: NewUser) -> User:
        """Insert a user and return it with its assigned id.

        Raises ValueError on duplicate email or username.
        """
        async with self._lock:
            try:
                with store_errors("create_user"), self._db.transaction() as conn:
                    cursor = conn.execute(
                        "INSERT INTO users (email, username, password_hash, role) VALUES (?, ?, ?, ?)",
                        (user.email, user.username, user.password_hash, user.role.value),
                    )
                    user_id = cursor.lastrowid
            except sqlite3.IntegrityError as exc:
                error_msg = str(exc).lower()
                if "users.email" in error_msg or "idx_users_email" in error_msg:
                    raise ValueError(f"Email '{user.email}' is already registered") from exc
                if "users.username" in error_msg or "idx_users_username" in error_msg:
                    raise ValueError(f"Username '{user.username}' already taken") from exc
                raise ValueError(str(exc)) from exc  # pragma: no cover
        return User(user_id=user_id, **user.model_dump())

    async def get_by_id(self, user_id: int) -> User | None:
        return self._fetch_one("get_by_id", "id = ?", user_id)

    async def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive)."""
        return self._fetch_one("get_by_email", "email = ?", email)

    async def get_by_username(self, username: str) -> User | None:
        """Look up a user by username (case-insensitive)."""
        return self._fetch_one("get_by_username", "username = ?", username)

    async def count_admins(self) -> int:
        with store_errors("count_admins"):
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM users WHERE role = ?",
                (Role.ADMIN.value,),
            ).fetchone()
        return row[0]

    async def is_banned(self, email: str) -> bool:
        with store_errors("is_banned"):
            row = self._db.connection.execute(
                "SELECT EXISTS(SELECT 1 FROM banned_identities WHERE email = ?)",
                (email,),
            ).fetchone()
        return bool(row[0])

    async def delete_and_ban(self, user_id: int) -> User | None:
        """Delete the user (sessions cascade) and ban the email in one transaction."""
        async with self._lock:
            with store_errors("delete_and_ban"), self._db.transaction() as conn:
                row = conn.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
                if row is None:
                    return None
                user = _row_to_user(row)
                conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
                conn.execute("INSERT OR IGNORE INTO banned_identities (email) VALUES (?)", (user.email,))
        logger.info("user deleted and banned", user_id=user_id)
        return user

    def _fetch_one(self, operation: str, where: str, value: object) -> User | None:
        with store_errors(operation):
            row = self._db.connection.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE {where}",  # noqa: S608 - fixed column and clause strings
                (value,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_user(row)
