"""Shared plumbing for content services."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.auth.roles import Role, has_permission, require_owner_or_admin
from festival_events.auth.session import Claims
from festival_events.errors import DatabaseError
from festival_events.models.collection import ContentKind
from festival_events.services.collection_engine import CollectionEngine
from festival_events.services.locks import KeyedLock

logger = logging.getLogger(__name__)


class ContentService:
    """Base class for services that own content in users' created sets."""

    kind: ContentKind

    def __init__(self, db: AsyncSession, locks: KeyedLock | None = None):
        self.db = db
        self.engine = CollectionEngine(db, locks)

    async def authorize(self, caller: Claims, item_id: int) -> None:
        """Admins pass; anyone else must have created `item_id`.

        Raises:
            ForbiddenError: If the caller is neither
        """
        if has_permission(caller.role, Role.ADMIN):
            return
        record = await self.engine.get(caller.user_id)
        require_owner_or_admin(caller, record, item_id, self.kind)

    async def commit(self) -> None:
        """Commit the session, reporting store failures as DatabaseError."""
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception(f"Failed to commit {self.kind.value} change")
            raise DatabaseError() from e
