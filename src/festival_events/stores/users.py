"""User account persistence."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.database.models import User, UserEventDataRow
from festival_events.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def validate_email(email: str) -> None:
    if "@" not in email or "." not in email:
        raise ValidationError("Invalid email format")
    if not 5 <= len(email) <= 254:
        raise ValidationError("Email must be 5-254 characters")


def validate_user_name(user_name: str) -> None:
    if not user_name.strip():
        raise ValidationError("Username cannot be empty")
    if not 2 <= len(user_name.strip()) <= 50:
        raise ValidationError("Username must be 2-50 characters")


class UserStore:
    """Store for user accounts. Never commits."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def find_by_oauth(self, provider: str, oauth_id: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.oauth_provider == provider, User.oauth_id == oauth_id)
        )
        return result.scalar_one_or_none()

    async def list(self, skip: int = 0, limit: int = 50) -> tuple[list[User], int]:
        """Return one page of users (oldest first) and the total count."""
        result = await self.db.execute(
            select(User).order_by(User.created_at, User.id).offset(skip).limit(limit)
        )
        total = await self.db.scalar(select(func.count()).select_from(User))
        return list(result.scalars().all()), total or 0

    async def create(
        self,
        provider: str,
        oauth_id: str,
        user_name: str,
        email: str | None,
        email_verified: bool = False,
        profile_picture_url: str | None = None,
    ) -> User:
        user = User(
            oauth_provider=provider,
            oauth_id=oauth_id,
            user_name=user_name,
            email=email,
            email_verified=email_verified,
            profile_picture_url=profile_picture_url,
            role="user",
            locked_out=False,
            login_count=0,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def record_login(self, user: User) -> None:
        user.last_login_at = datetime.now(timezone.utc)
        user.login_count = (user.login_count or 0) + 1
        await self.db.flush()

    async def set_role(self, user_id: str, role: str) -> User:
        user = await self.find_by_id(user_id)
        user.role = role
        await self.db.flush()
        return user

    async def lock_out(
        self, user_id: str, reason: str | None, until: datetime | None = None
    ) -> User:
        user = await self.find_by_id(user_id)
        user.locked_out = True
        user.lockout_reason = reason
        user.lockout_until = until
        await self.db.flush()
        return user

    async def unlock(self, user_id: str) -> User:
        user = await self.find_by_id(user_id)
        user.locked_out = False
        user.lockout_reason = None
        user.lockout_until = None
        await self.db.flush()
        return user

    async def update_profile(
        self,
        user_id: str,
        user_name: str | None = None,
        email: str | None = None,
        timezone: str | None = None,
        language: str | None = None,
    ) -> User:
        """Change the given profile fields; fields left as None are kept.

        Raises:
            ValidationError: If the user name or email is malformed
            NotFoundError: If the user does not exist
        """
        if user_name is not None:
            validate_user_name(user_name)
        if email is not None:
            validate_email(email)

        user = await self.find_by_id(user_id)
        if user_name is not None:
            user.user_name = user_name.strip()
        if email is not None:
            user.email = email
            user.email_verified = False
        if timezone is not None:
            user.timezone = timezone
        if language is not None:
            user.language = language
        await self.db.flush()
        return user

    async def delete(self, user_id: str) -> bool:
        """Delete a user and their collection record.

        Content they created stays, still recorded as theirs.
        """
        result = await self.db.execute(delete(User).where(User.id == user_id))
        if result.rowcount == 0:
            return False
        await self.db.execute(
            delete(UserEventDataRow).where(UserEventDataRow.user_id == user_id)
        )
        logger.info(f"Deleted user {user_id} and their collection")
        return True
