"""Shared fixtures for store, session, and auth service tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from shared.auth.password import SimpleHasher
from shared.auth.service import AuthService
from shared.auth.session_manager import SessionManager
from shared.db import Database, SqliteSessionRepository, SqliteUserRepository

if TYPE_CHECKING:
    from pathlib import Path


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "forum.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def user_repo(db):
    return SqliteUserRepository(db)


@pytest.fixture
def session_repo(db):
    return SqliteSessionRepository(db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_manager(session_repo, clock):
    return SessionManager(session_repo, ttl_seconds=600, clock=clock)


@pytest.fixture
def auth_service(user_repo, session_manager):
    return AuthService(user_repo, session_manager, password_hasher=SimpleHasher())
