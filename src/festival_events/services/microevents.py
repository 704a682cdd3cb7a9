"""Microevent service.

Works like the event service: checks first, then one transaction for the
microevent row and its owner's `created_microevents`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from festival_events.auth.session import Claims
from festival_events.errors import NotFoundError, ValidationError
from festival_events.models.collection import CollectionRecord, ContentKind
from festival_events.models.microevent import Microevent, MicroeventInput
from festival_events.services.base import ContentService
from festival_events.services.collection_engine import add_id, remove_id
from festival_events.stores.events import EventStore
from festival_events.stores.microevents import MicroeventStore

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # Naive times are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MicroeventService(ContentService):
    kind = ContentKind.MICROEVENT

    def __init__(self, db, locks=None):
        super().__init__(db, locks)
        self.microevents = MicroeventStore(db)
        self.events = EventStore(db)

    async def find_all(self) -> list[Microevent]:
        return await self.microevents.find_all()

    async def find_active(self) -> list[Microevent]:
        return await self.microevents.find_active()

    async def find_by_id(self, microevent_id: int) -> Microevent:
        return await self.microevents.find_by_id(microevent_id)

    async def find_by_event(self, event_id: int) -> list[Microevent]:
        if not await self.events.exists(event_id):
            raise NotFoundError("Event not found")
        return await self.microevents.find_by_event(event_id)

    async def find_by_user(self, user_id: str) -> list[Microevent]:
        return await self.microevents.find_by_user(user_id)

    def validate(self, data: MicroeventInput) -> None:
        if not data.name.strip():
            raise ValidationError("Microevent name is required")
        if data.start_time and data.end_time:
            if _as_utc(data.end_time) < _as_utc(data.start_time):
                raise ValidationError("End time cannot be before start time")

    async def _parent_event(self, event_id: int | None) -> int:
        if event_id is None:
            raise ValidationError("event_id is required")
        if not await self.events.exists(event_id):
            raise NotFoundError("Event not found")
        return event_id

    async def create(
        self,
        data: MicroeventInput,
        caller: Claims,
        event_id: int | None = None,
    ) -> Microevent:
        """Store a new microevent owned by the caller.

        `event_id` from the URL takes precedence over the payload's.
        """
        self.validate(data)
        parent_id = await self._parent_event(event_id if event_id is not None else data.event_id)

        async def insert(record: CollectionRecord) -> int:
            microevent_id = await self.microevents.create(data, parent_id, caller.user_id)
            add_id(record.created_microevents, microevent_id)
            return microevent_id

        microevent_id = await self.engine.run_atomic(caller.user_id, insert)
        logger.info(
            f"User {caller.user_id} created microevent {microevent_id} in event {parent_id}"
        )
        return await self.microevents.find_by_id(microevent_id)

    async def update(
        self, microevent_id: int, data: MicroeventInput, caller: Claims
    ) -> Microevent:
        """Overwrite a microevent. Owner or admin only; the owner never changes."""
        self.validate(data)
        await self.authorize(caller, microevent_id)

        current = await self.microevents.find_by_id(microevent_id)
        parent_id = await self._parent_event(
            data.event_id if data.event_id is not None else current.event_id
        )

        if not await self.microevents.update(microevent_id, data, parent_id):
            raise NotFoundError("Microevent not found")
        await self.commit()

        logger.info(f"User {caller.user_id} updated microevent {microevent_id}")
        return await self.microevents.find_by_id(microevent_id)

    async def delete(self, microevent_id: int, caller: Claims) -> None:
        """Delete a microevent and remove it from its owner's created set."""
        await self.authorize(caller, microevent_id)
        owner = await self.microevents.find_owner(microevent_id)

        async def remove(record: CollectionRecord) -> None:
            if not await self.microevents.delete(microevent_id):
                raise NotFoundError("Microevent not found")
            remove_id(record.created_microevents, microevent_id)

        await self.engine.run_atomic(owner, remove)
        logger.info(f"User {caller.user_id} deleted microevent {microevent_id}")

    async def archive(self, microevent_id: int, caller: Claims) -> Microevent:
        return await self._set_archived(microevent_id, caller, True)

    async def unarchive(self, microevent_id: int, caller: Claims) -> Microevent:
        return await self._set_archived(microevent_id, caller, False)

    async def _set_archived(
        self, microevent_id: int, caller: Claims, archived: bool
    ) -> Microevent:
        await self.authorize(caller, microevent_id)

        if archived:
            changed = await self.microevents.archive(microevent_id)
        else:
            changed = await self.microevents.unarchive(microevent_id)
        if not changed:
            raise NotFoundError("Microevent not found")
        await self.commit()

        logger.info(
            f"User {caller.user_id} {'archived' if archived else 'unarchived'} "
            f"microevent {microevent_id}"
        )
        return await self.microevents.find_by_id(microevent_id)
