"""Abstract interface for session persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.auth.models import AuthSession


class SessionRepository(ABC):
    """Abstract interface for session rows keyed by token and by user.

    Every method is a single atomic operation against the store.
    """

    @abstractmethod
    async def replace_for_user(self, session: AuthSession) -> None:
        """Insert the session and delete every other session of the same user."""

    @abstractmethod
    async def get(self, token: str) -> AuthSession | None: ...

    @abstractmethod
    async def refresh(self, token: str, user_id: int, expires_at: float) -> bool:
        """Delete sibling sessions and set a new expiry.

        Returns False when the token row no longer exists.
        """

    @abstractmethod
    async def delete(self, token: str) -> None: ...

    @abstractmethod
    async def delete_expired(self, now: float) -> int: ...
