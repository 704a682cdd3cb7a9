"""Microevent persistence."""

from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.database.models import MicroeventRow
from festival_events.errors import NotFoundError
from festival_events.models.microevent import Microevent, MicroeventInput


def _columns(data: MicroeventInput, event_id: int) -> dict:
    return {
        "event_id": event_id,
        "name": data.name,
        "description": data.description,
        "archive": data.archive,
        "start_time": data.start_time,
        "end_time": data.end_time,
    }


def _select_microevents():
    return select(MicroeventRow).execution_options(populate_existing=True)


class MicroeventStore:
    """Store for microevents. Never commits."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_all(self) -> list[Microevent]:
        """All microevents, earliest start first (unscheduled ones last)."""
        result = await self.db.execute(
            _select_microevents().order_by(
                MicroeventRow.start_time.is_(None),
                MicroeventRow.start_time,
                MicroeventRow.id,
            )
        )
        return [Microevent.model_validate(row) for row in result.scalars()]

    async def find_by_id(self, microevent_id: int) -> Microevent:
        result = await self.db.execute(
            _select_microevents().where(MicroeventRow.id == microevent_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError("Microevent not found")
        return Microevent.model_validate(row)

    async def find_by_id_list(self, microevent_ids: list[int]) -> list[Microevent]:
        """Return the microevents that exist among `microevent_ids`.

        Missing ids are dropped. Results follow the input order.
        """
        if not microevent_ids:
            return []

        result = await self.db.execute(
            _select_microevents().where(MicroeventRow.id.in_(set(microevent_ids)))
        )
        position = {
            mid: i for i, mid in reversed(list(enumerate(microevent_ids)))
        }
        rows = sorted(result.scalars().all(), key=lambda row: position[row.id])
        return [Microevent.model_validate(row) for row in rows]

    async def find_by_event(self, event_id: int) -> list[Microevent]:
        result = await self.db.execute(
            _select_microevents()
            .where(MicroeventRow.event_id == event_id)
            .order_by(MicroeventRow.start_time, MicroeventRow.id)
        )
        return [Microevent.model_validate(row) for row in result.scalars()]

    async def find_by_user(self, user_id: str) -> list[Microevent]:
        result = await self.db.execute(
            _select_microevents()
            .where(MicroeventRow.user_id == user_id)
            .order_by(MicroeventRow.id)
        )
        return [Microevent.model_validate(row) for row in result.scalars()]

    async def find_active(self) -> list[Microevent]:
        result = await self.db.execute(
            _select_microevents()
            .where(MicroeventRow.archive.is_(False))
            .order_by(MicroeventRow.start_time, MicroeventRow.id)
        )
        return [Microevent.model_validate(row) for row in result.scalars()]

    async def find_owner(self, microevent_id: int) -> str:
        """Return the owning user id.

        Raises:
            NotFoundError: If no microevent has this id
        """
        result = await self.db.execute(
            select(MicroeventRow.user_id).where(MicroeventRow.id == microevent_id)
        )
        owner = result.scalar_one_or_none()
        if owner is None:
            raise NotFoundError("Microevent not found")
        return owner

    async def find_owned_by(self, user_id: str) -> list[int]:
        result = await self.db.execute(
            select(MicroeventRow.id)
            .where(MicroeventRow.user_id == user_id)
            .order_by(MicroeventRow.id)
        )
        return list(result.scalars().all())

    async def create(self, data: MicroeventInput, event_id: int, user_id: str) -> int:
        """Insert a microevent and return its new id."""
        row = MicroeventRow(user_id=user_id, **_columns(data, event_id))
        self.db.add(row)
        await self.db.flush()
        return row.id

    async def update(self, microevent_id: int, data: MicroeventInput, event_id: int) -> bool:
        """Overwrite a microevent. The owner never changes."""
        result = await self.db.execute(
            update(MicroeventRow)
            .where(MicroeventRow.id == microevent_id)
            .values(**_columns(data, event_id))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete(self, microevent_id: int) -> bool:
        result = await self.db.execute(
            delete(MicroeventRow)
            .where(MicroeventRow.id == microevent_id)
        )
        return result.rowcount > 0

    async def archive(self, microevent_id: int) -> bool:
        return await self._set_archive(microevent_id, True)

    async def unarchive(self, microevent_id: int) -> bool:
        return await self._set_archive(microevent_id, False)

    async def _set_archive(self, microevent_id: int, archived: bool) -> bool:
        result = await self.db.execute(
            update(MicroeventRow)
            .where(MicroeventRow.id == microevent_id)
            .values(archive=archived)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
