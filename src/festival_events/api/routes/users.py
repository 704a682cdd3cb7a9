"""User management routes."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.auth.dependencies import get_claims, require_admin, require_super_admin
from festival_events.auth.roles import Role, has_permission
from festival_events.auth.session import Claims
from festival_events.database.connection import get_db_session
from festival_events.errors import ForbiddenError, NotFoundError, ValidationError
from festival_events.stores.users import UserStore

logger = logging.getLogger(__name__)

router = APIRouter()


class UserResponse(BaseModel):
    """User response model."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_name: str
    email: str | None
    email_verified: bool
    profile_picture_url: str | None
    timezone: str | None = None
    language: str | None = None
    role: str
    locked_out: bool
    lockout_reason: str | None = None
    lockout_until: datetime | None = None
    created_at: datetime | None = None
    last_login_at: datetime | None = None
    login_count: int = 0


class UserListResponse(BaseModel):
    """User list response."""

    users: list[UserResponse]
    total: int


class ProfileUpdate(BaseModel):
    """Profile fields a user may change. Omitted fields are left alone."""

    user_name: str | None = None
    email: str | None = None
    timezone: str | None = Field(default=None, max_length=64)
    language: str | None = Field(default=None, max_length=16)


class LockoutRequest(BaseModel):
    reason: str | None = None
    until: datetime | None = None


class RoleUpdate(BaseModel):
    role: Role


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    claims: Claims = Depends(get_claims),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """Get the current user's profile."""
    user = await UserStore(db).find_by_id(claims.user_id)
    return UserResponse.model_validate(user)


async def _update_profile(db: AsyncSession, user_id: str, update: ProfileUpdate) -> UserResponse:
    user = await UserStore(db).update_profile(
        user_id,
        user_name=update.user_name,
        email=update.email,
        timezone=update.timezone,
        language=update.language,
    )
    await db.commit()
    return UserResponse.model_validate(user)


def _require_self_or_admin(claims: Claims, user_id: str) -> None:
    if user_id != claims.user_id and not has_permission(claims.role, Role.ADMIN):
        logger.warning(f"User {claims.user_id} tried to access profile of {user_id}")
        raise ForbiddenError("Cannot access another user's profile")


@router.put("/me", response_model=UserResponse)
async def update_current_user_profile(
    update: ProfileUpdate,
    claims: Claims = Depends(get_claims),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """Update the current user's name, email, timezone or language."""
    return await _update_profile(db, claims.user_id, update)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_profile(
    user_id: str,
    claims: Claims = Depends(get_claims),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """Get a profile (the user themselves or an admin)."""
    _require_self_or_admin(claims, user_id)
    user = await UserStore(db).find_by_id(user_id)
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user_profile(
    user_id: str,
    update: ProfileUpdate,
    claims: Claims = Depends(get_claims),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """Update a profile (the user themselves or an admin)."""
    _require_self_or_admin(claims, user_id)
    response = await _update_profile(db, user_id, update)
    logger.info(f"User {claims.user_id} updated profile of {user_id}")
    return response


# Admin routes


@router.get("", response_model=UserListResponse)
async def list_users(
    admin: Claims = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
    skip: int = 0,
    limit: int = 50,
) -> UserListResponse:
    """List all users (admin only)."""
    users, total = await UserStore(db).list(skip=skip, limit=limit)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=total,
    )


@router.post("/{user_id}/lockout", response_model=UserResponse)
async def lock_out_user(
    user_id: str,
    request: LockoutRequest,
    admin: Claims = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """Lock a user out (admin only)."""
    if user_id == admin.user_id:
        raise ValidationError("Cannot lock out your own account")

    user = await UserStore(db).lock_out(user_id, request.reason, request.until)
    await db.commit()

    logger.info(f"User {admin.user_id} locked out {user_id}")
    return UserResponse.model_validate(user)


@router.delete("/{user_id}/lockout", response_model=UserResponse)
async def unlock_user(
    user_id: str,
    admin: Claims = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """Lift a lockout (admin only)."""
    user = await UserStore(db).unlock(user_id)
    await db.commit()

    logger.info(f"User {admin.user_id} unlocked {user_id}")
    return UserResponse.model_validate(user)


@router.put("/{user_id}/role", response_model=UserResponse)
async def set_user_role(
    user_id: str,
    request: RoleUpdate,
    admin: Claims = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """Change a user's role (super admin only)."""
    # Prevent removing own super admin
    if user_id == admin.user_id:
        raise ValidationError("Cannot change your own role")

    user = await UserStore(db).set_role(user_id, request.role.value)
    await db.commit()

    logger.info(f"User {admin.user_id} set role of {user_id} to {request.role.value}")
    return UserResponse.model_validate(user)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    admin: Claims = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Delete a user and their collection (super admin only)."""
    if user_id == admin.user_id:
        raise ValidationError("Cannot delete your own account")

    if not await UserStore(db).delete(user_id):
        raise NotFoundError("User not found")
    await db.commit()

    logger.info(f"User {admin.user_id} deleted user {user_id}")
    return {"status": "deleted"}
