"""Abstract interface for user and banned-identity persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.auth.models import NewUser, User


class UserRepository(ABC):
    """Abstract interface for user persistence.

    Implementations raise ValueError on uniqueness violations and
    StoreError on any other persistence failure.
    """

    @abstractmethod
    async def create_user(self, user: NewUser) -> User: ...

    @abstractmethod
    async def get_by_id(self, user_id: int) -> User | None: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def get_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    async def count_admins(self) -> int: ...

    @abstractmethod
    async def is_banned(self, email: str) -> bool: ...

    @abstractmethod
    async def delete_and_ban(self, user_id: int) -> User | None:
        """Delete the user and ban their email as one atomic unit.

        Returns the deleted user, or None when no such user exists.
        """
