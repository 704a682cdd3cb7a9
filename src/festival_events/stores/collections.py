"""Per-user collection records.

A record is created lazily on a user's first access. Creation is an
`INSERT ... ON CONFLICT (user_id) DO NOTHING` followed by a read, so two
first accesses racing each other end up reading the same row.

`replace` is a compare-and-set on `version`: it only writes when the row
still carries the version the caller read, and bumps it.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.database.models import UserEventDataRow
from festival_events.errors import NotFoundError, StaleCollectionError
from festival_events.models.collection import CollectionRecord, CollectionSet

logger = logging.getLogger(__name__)

_LIST_COLUMNS = [s.value for s in CollectionSet]


def _to_record(row: UserEventDataRow) -> CollectionRecord:
    lists = {name: [int(i) for i in getattr(row, name) or []] for name in _LIST_COLUMNS}
    return CollectionRecord(id=row.id, user_id=row.user_id, version=row.version, **lists)


class CollectionStore:
    """Store for user collection records. Never commits."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str) -> CollectionRecord:
        """Return the user's record, creating an empty one on first access."""
        row = await self._select(UserEventDataRow.user_id == user_id)
        if row is None:
            await self._insert_if_absent(user_id)
            row = await self._select(UserEventDataRow.user_id == user_id)
        return _to_record(row)

    async def get_by_record_id(self, record_id: int) -> CollectionRecord:
        row = await self._select(UserEventDataRow.id == record_id)
        if row is None:
            raise NotFoundError("Collection not found")
        return _to_record(row)

    async def replace(self, record: CollectionRecord) -> CollectionRecord:
        """Overwrite all six lists of the record's user.

        Returns the record with its new version.

        Raises:
            StaleCollectionError: If the stored version is no longer
                `record.version`
        """
        values = {name: list(record.ids(CollectionSet(name))) for name in _LIST_COLUMNS}
        result = await self.db.execute(
            update(UserEventDataRow)
            .where(
                UserEventDataRow.user_id == record.user_id,
                UserEventDataRow.version == record.version,
            )
            .values(version=record.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StaleCollectionError(record.user_id, record.version)

        return record.model_copy(update={"version": record.version + 1, **values})

    async def _select(self, criterion) -> UserEventDataRow | None:
        result = await self.db.execute(
            select(UserEventDataRow)
            .where(criterion)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _insert_if_absent(self, user_id: str) -> None:
        values = {"user_id": user_id, "version": 0}
        values.update({name: [] for name in _LIST_COLUMNS})

        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(UserEventDataRow).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite.insert(UserEventDataRow).values(**values)
        else:
            await self._insert_in_savepoint(values)
            return

        await self.db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))
        logger.debug(f"Ensured collection record for user {user_id}")

    async def _insert_in_savepoint(self, values: dict) -> None:
        try:
            async with self.db.begin_nested():
                self.db.add(UserEventDataRow(**values))
        except IntegrityError:
            logger.debug(f"Collection record for user {values['user_id']} already exists")
