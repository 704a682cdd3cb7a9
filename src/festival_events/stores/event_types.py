"""Event type persistence."""

from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.database.models import EventRow, EventTypeRow
from festival_events.errors import ConflictError, NotFoundError
from festival_events.models.festival import EventType


class EventTypeStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_all(self) -> list[EventType]:
        result = await self.db.execute(select(EventTypeRow).order_by(EventTypeRow.name))
        return [EventType.model_validate(row) for row in result.scalars()]

    async def find_by_id(self, type_id: int) -> EventType:
        row = await self.db.get(EventTypeRow, type_id, populate_existing=True)
        if row is None:
            raise NotFoundError("Event type not found")
        return EventType.model_validate(row)

    async def exists(self, type_id: int) -> bool:
        result = await self.db.execute(
            select(EventTypeRow.id).where(EventTypeRow.id == type_id)
        )
        return result.scalar_one_or_none() is not None

    async def create(self, event_type: EventType) -> int:
        """Insert a type. Names are unique."""
        await self._check_name_free(event_type.name)
        row = EventTypeRow(
            name=event_type.name,
            description=event_type.description,
            map_indicator=event_type.map_indicator,
            category=event_type.category,
        )
        self.db.add(row)
        await self.db.flush()
        return row.id

    async def update(self, type_id: int, event_type: EventType) -> bool:
        await self._check_name_free(event_type.name, exclude_id=type_id)
        result = await self.db.execute(
            update(EventTypeRow)
            .where(EventTypeRow.id == type_id)
            .values(
                name=event_type.name,
                description=event_type.description,
                map_indicator=event_type.map_indicator,
                category=event_type.category,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete(self, type_id: int) -> bool:
        """Delete a type that no event uses."""
        in_use = await self.db.execute(
            select(EventRow.id).where(EventRow.event_type_id == type_id).limit(1)
        )
        if in_use.scalar_one_or_none() is not None:
            raise ConflictError("Event type is still used by events")

        result = await self.db.execute(
            delete(EventTypeRow)
            .where(EventTypeRow.id == type_id)
        )
        return result.rowcount > 0

    async def _check_name_free(self, name: str, exclude_id: int | None = None) -> None:
        stmt = select(EventTypeRow.id).where(EventTypeRow.name == name)
        if exclude_id is not None:
            stmt = stmt.where(EventTypeRow.id != exclude_id)
        result = await self.db.execute(stmt)
        if result.scalar_one_or_none() is not None:
            raise ConflictError(f"Event type '{name}' already exists")
