# ruff: noqa: TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter

from expense_approvals.api.deps import AdminDep, AuthDep
from expense_approvals.exceptions import NotFoundError
from expense_approvals.schemas.user import UpsertUserRequest, UserListResponse, UserResponse
from expense_approvals.services.directory import UserInfo, get_user_directory

users_router = APIRouter(prefix="/users", tags=["users"])


def _to_response(user: UserInfo) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        manager_id=user.manager_id,
        manager_name=user.manager_name,
        department=user.department,
        is_active=user.is_active,
    )


@users_router.put("/{user_id}", response_model=UserResponse)
async def upsert_user(
    user_id: uuid.UUID,
    payload: UpsertUserRequest,
    auth: AdminDep,
) -> UserResponse:
    """Create or update a user in the stub directory (admin only)."""
    directory = get_user_directory()
    user = UserInfo(id=user_id, **payload.model_dump())
    directory.seed(user)  # ty: ignore[unresolved-attribute]
    return _to_response(user)


@users_router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    auth: AuthDep,
) -> UserResponse:
    """Get a user from the stub directory."""
    user = await get_user_directory().get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return _to_response(user)


@users_router.get("", response_model=UserListResponse)
async def list_users(
    auth: AuthDep,
) -> UserListResponse:
    """List all users in the stub directory."""
    users = await get_user_directory().list_users()
    items = [_to_response(u) for u in users]
    return UserListResponse(items=items, total=len(items))


@users_router.delete("/{user_id}", response_model=UserResponse)
async def deactivate_user(
    user_id: uuid.UUID,
    auth: AdminDep,
) -> UserResponse:
    """Soft-remove a user: the record stays but is marked inactive (admin only)."""
    user = get_user_directory().deactivate(user_id)  # ty: ignore[unresolved-attribute]
    if user is None:
        raise NotFoundError("User not found")
    return _to_response(user)
