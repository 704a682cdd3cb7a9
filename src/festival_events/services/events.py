"""Event service.

Validation and authorization happen before anything is written. Creating an
event and adding it to the creator's `created_events` is one transaction, as
is deleting an event and removing it from its owner's set.
"""

from __future__ import annotations

import logging

from festival_events.auth.session import Claims
from festival_events.errors import NotFoundError, ValidationError
from festival_events.models.collection import CollectionRecord, ContentKind
from festival_events.models.festival import Event, FestivalDocument
from festival_events.services.base import ContentService
from festival_events.services.collection_engine import add_id, remove_id
from festival_events.stores.event_types import EventTypeStore
from festival_events.stores.events import EventStore

logger = logging.getLogger(__name__)


class EventService(ContentService):
    kind = ContentKind.EVENT

    def __init__(self, db, locks=None):
        super().__init__(db, locks)
        self.events = EventStore(db)
        self.event_types = EventTypeStore(db)

    async def find_all(self) -> list[Event]:
        return await self.events.find_all()

    async def find_by_id(self, event_id: int) -> Event:
        return await self.events.find_by_id(event_id)

    async def search(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
        radius_miles: float | None = None,
        event_type_id: int | None = None,
    ) -> list[Event]:
        """Search events.

        With a full point and radius this is a nearby search (optionally
        narrowed to one type); with only a type it lists that type; with
        nothing it lists everything.
        """
        location = (latitude, longitude, radius_miles)
        if any(v is not None for v in location):
            if any(v is None for v in location):
                raise ValidationError(
                    "latitude, longitude and radius_miles must be given together"
                )
            events = await self.events.find_nearby(latitude, longitude, radius_miles)
            if event_type_id is not None:
                events = [e for e in events if e.event_type.id == event_type_id]
            return events

        if event_type_id is not None:
            return await self.events.find_by_type(event_type_id)

        return await self.events.find_all()

    async def validate(self, document: FestivalDocument) -> None:
        """Reject documents that cannot be stored.

        Raises:
            ValidationError: On blank name or description, coordinates out of
                range, an end date before the start date, or an unknown type
        """
        if not document.name.strip():
            raise ValidationError("Event name is required")
        if not document.description.strip():
            raise ValidationError("Event description is required")

        location = document.location_info
        if location.latitude is not None and not -90 <= location.latitude <= 90:
            raise ValidationError("Latitude must be between -90 and 90")
        if location.longitude is not None and not -180 <= location.longitude <= 180:
            raise ValidationError("Longitude must be between -180 and 180")

        dates = document.date_info
        if dates.start_date and dates.end_date and dates.end_date < dates.start_date:
            raise ValidationError("End date cannot be before start date")

        if not await self.event_types.exists(document.event_type_id):
            raise ValidationError(f"Unknown event type {document.event_type_id}")

    async def create(self, document: FestivalDocument, caller: Claims) -> Event:
        """Store a new event owned by the caller."""
        await self.validate(document)

        async def insert(record: CollectionRecord) -> int:
            event_id = await self.events.create(document, caller.user_id)
            add_id(record.created_events, event_id)
            return event_id

        event_id = await self.engine.run_atomic(caller.user_id, insert)
        logger.info(f"User {caller.user_id} created event {event_id}")
        return await self.events.find_by_id(event_id)

    async def update(self, event_id: int, document: FestivalDocument, caller: Claims) -> Event:
        """Overwrite an event. Owner or admin only."""
        await self.validate(document)
        await self.authorize(caller, event_id)

        if not await self.events.update(event_id, document):
            raise NotFoundError("Event not found")
        await self.commit()

        logger.info(f"User {caller.user_id} updated event {event_id}")
        return await self.events.find_by_id(event_id)

    async def delete(self, event_id: int, caller: Claims) -> None:
        """Delete an event and remove it from its owner's created set."""
        await self.authorize(caller, event_id)
        owner = await self.events.find_owner(event_id)

        if owner is None:
            if not await self.events.delete(event_id):
                raise NotFoundError("Event not found")
            await self.commit()
        else:
            async def remove(record: CollectionRecord) -> None:
                if not await self.events.delete(event_id):
                    raise NotFoundError("Event not found")
                remove_id(record.created_events, event_id)

            await self.engine.run_atomic(owner, remove)

        logger.info(f"User {caller.user_id} deleted event {event_id}")
