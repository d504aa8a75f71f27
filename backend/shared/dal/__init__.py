"""Data access layer: repository interfaces for users, bans, and sessions."""

from shared.dal.session_repository import SessionRepository
from shared.dal.user_repository import UserRepository

__all__ = [
    "SessionRepository",
    "UserRepository",
]
