# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from expense_approvals.models.enums import UserRole


class UserInfo(BaseModel):
    """User metadata from the identity provider."""

    id: uuid.UUID
    name: str
    email: str
    role: UserRole = UserRole.EMPLOYEE
    manager_id: uuid.UUID | None = None
    manager_name: str | None = None  # legacy link by display name
    department: str | None = None
    is_active: bool = True


@runtime_checkable
class UserDirectory(Protocol):
    """Interface for the user directory."""

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        """Fetch a user. Returns None if not found."""
        ...

    async def find_by_name(self, name: str) -> list[UserInfo]:
        """Return every active user whose display name matches exactly."""
        ...

    async def list_users(self) -> list[UserInfo]:
        """List all users, active or not."""
        ...


class InMemoryUserDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, UserInfo] = {}

    def seed(self, user: UserInfo) -> None:
        """Create or replace a user."""
        self._users[user.id] = user

    def deactivate(self, user_id: uuid.UUID) -> UserInfo | None:
        """Soft-remove a user from the roster. Returns None if not found."""
        user = self._users.get(user_id)
        if user is None:
            return None
        user = user.model_copy(update={"is_active": False})
        self._users[user_id] = user
        return user

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        """Fetch a user. Returns None if not found."""
        return self._users.get(user_id)

    async def find_by_name(self, name: str) -> list[UserInfo]:
        """Return every active user whose display name matches exactly."""
        return [u for u in self._users.values() if u.name == name and u.is_active]

    async def list_users(self) -> list[UserInfo]:
        """List all users, active or not."""
        return list(self._users.values())


_user_directory: UserDirectory = InMemoryUserDirectory()


def get_user_directory() -> UserDirectory:
    """FastAPI dependency for the user directory."""
    return _user_directory


def set_user_directory(directory: UserDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _user_directory
    _user_directory = directory
