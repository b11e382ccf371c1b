# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel, Field

from expense_approvals.models.enums import UserRole


class UpsertUserRequest(BaseModel):
    """Request body for upserting a user in the stub directory."""

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    role: UserRole = UserRole.EMPLOYEE
    manager_id: uuid.UUID | None = None
    manager_name: str | None = Field(default=None, max_length=255)
    department: str | None = Field(default=None, max_length=255)
    is_active: bool = True


class UserResponse(BaseModel):
    """Response schema for a directory user."""

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    manager_id: uuid.UUID | None
    manager_name: str | None
    department: str | None
    is_active: bool


class UserListResponse(BaseModel):
    """List of directory users."""

    items: list[UserResponse]
    total: int
