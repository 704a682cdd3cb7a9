"""Event persistence.

Events are stored as a row of queryable columns plus the full festival
document serialized into `event_data`. Every write derives the queryable
columns from the document, so the two can never disagree.

## Nearby search

`find_nearby` filters with a bounding box rather than a great-circle
distance:

- latitude:  ±radius / 69 degrees
- longitude: ±radius / (69 * cos(latitude)) degrees

Points in the corners of the box are included even though they are further
than `radius_miles` away.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.config import get_settings
from festival_events.database.models import EventRow
from festival_events.errors import NotFoundError, SerializationError, ValidationError
from festival_events.models.festival import Event, EventType, FestivalDocument

logger = logging.getLogger(__name__)

MILES_PER_DEGREE_LATITUDE = 69.0


def bounding_box(
    latitude: float, longitude: float, radius_miles: float
) -> tuple[float, float, float, float]:
    """Return (min_lat, max_lat, min_lon, max_lon) around a point."""
    lat_delta = radius_miles / MILES_PER_DEGREE_LATITUDE
    lon_delta = radius_miles / (
        MILES_PER_DEGREE_LATITUDE * math.cos(math.radians(latitude))
    )
    return (
        latitude - lat_delta,
        latitude + lat_delta,
        longitude - lon_delta,
        longitude + lon_delta,
    )


def _columns(document: FestivalDocument) -> dict[str, Any]:
    """Queryable columns derived from a festival document."""
    return {
        "name": document.name,
        "description": document.description,
        "website": document.website,
        "event_type_id": document.event_type_id,
        "latitude": document.location_info.latitude,
        "longitude": document.location_info.longitude,
        "start_date": document.date_info.start_date,
        "end_date": document.date_info.end_date,
        "camping_allowed": document.camping_allowed,
        "event_data": document.model_dump_json(),
    }


def _select_events():
    # Rows may already sit in the session with server defaults expired
    return select(EventRow).execution_options(populate_existing=True)


def _to_event(row: EventRow) -> Event:
    try:
        details = FestivalDocument.model_validate_json(row.event_data)
    except PydanticValidationError as e:
        raise SerializationError(
            f"Stored document for event {row.id} is malformed", entity_id=row.id
        ) from e

    return Event(
        id=row.id,
        name=row.name,
        description=row.description,
        website=row.website,
        event_type=EventType.model_validate(row.event_type),
        latitude=row.latitude,
        longitude=row.longitude,
        start_date=row.start_date,
        end_date=row.end_date,
        camping_allowed=bool(row.camping_allowed),
        owner_user_id=row.owner_user_id,
        created_at=row.created_at,
        details=details,
    )


def _to_events(rows: Iterable[EventRow]) -> list[Event]:
    """Map rows to events, dropping rows whose document does not parse."""
    events = []
    for row in rows:
        try:
            events.append(_to_event(row))
        except SerializationError as e:
            logger.warning(f"Skipping event {e.entity_id}: {e.message}")
    return events


class EventStore:
    """Store for festival events.

    The store never commits; the calling service owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_all(self) -> list[Event]:
        result = await self.db.execute(_select_events().order_by(EventRow.id))
        return _to_events(result.scalars().all())

    async def find_by_id(self, event_id: int) -> Event:
        """Return one event.

        Raises:
            NotFoundError: If no event has this id
            SerializationError: If its stored document is malformed
        """
        row = await self._get_row(event_id)
        if row is None:
            raise NotFoundError("Event not found")
        return _to_event(row)

    async def exists(self, event_id: int) -> bool:
        result = await self.db.execute(
            select(EventRow.id).where(EventRow.id == event_id)
        )
        return result.scalar_one_or_none() is not None

    async def find_by_id_list(self, event_ids: list[int]) -> list[Event]:
        """Return the events that exist among `event_ids`.

        Missing ids are silently dropped, so the result may be shorter than
        the input. Results follow the order of first appearance in `event_ids`.
        """
        if not event_ids:
            return []

        result = await self.db.execute(
            _select_events().where(EventRow.id.in_(set(event_ids)))
        )
        position = {event_id: i for i, event_id in reversed(list(enumerate(event_ids)))}
        rows = sorted(result.scalars().all(), key=lambda row: position[row.id])
        return _to_events(rows)

    async def find_by_type(self, event_type_id: int) -> list[Event]:
        result = await self.db.execute(
            _select_events()
            .where(EventRow.event_type_id == event_type_id)
            .order_by(EventRow.id)
        )
        return _to_events(result.scalars().all())

    async def find_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_miles: float,
    ) -> list[Event]:
        """Return events inside the bounding box around a point, ordered by name.

        Raises:
            ValidationError: If the radius is outside (0, max] miles or the
                point is not a valid coordinate
        """
        max_radius = get_settings().nearby_max_radius_miles
        if not 0 < radius_miles <= max_radius:
            raise ValidationError(
                f"Radius must be between 0 and {max_radius:g} miles"
            )
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise ValidationError("Invalid search coordinates")

        min_lat, max_lat, min_lon, max_lon = bounding_box(
            latitude, longitude, radius_miles
        )

        result = await self.db.execute(
            _select_events()
            .where(
                EventRow.latitude.is_not(None),
                EventRow.longitude.is_not(None),
                EventRow.latitude.between(min_lat, max_lat),
                EventRow.longitude.between(min_lon, max_lon),
            )
            .order_by(EventRow.name)
        )
        return _to_events(result.scalars().all())

    async def find_owner(self, event_id: int) -> str | None:
        """Return the id of the user who created an event.

        Raises:
            NotFoundError: If no event has this id
        """
        result = await self.db.execute(
            select(EventRow.id, EventRow.owner_user_id).where(EventRow.id == event_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Event not found")
        return row.owner_user_id

    async def find_owned_by(self, user_id: str) -> list[int]:
        """Return ids of all events created by a user."""
        result = await self.db.execute(
            select(EventRow.id)
            .where(EventRow.owner_user_id == user_id)
            .order_by(EventRow.id)
        )
        return list(result.scalars().all())

    async def create(self, document: FestivalDocument, owner_user_id: str) -> int:
        """Insert an event and return its new id."""
        row = EventRow(owner_user_id=owner_user_id, **_columns(document))
        self.db.add(row)
        await self.db.flush()
        return row.id

    async def update(self, event_id: int, document: FestivalDocument) -> bool:
        """Overwrite an event. Returns False if no row has this id."""
        result = await self.db.execute(
            update(EventRow)
            .where(EventRow.id == event_id)
            .values(**_columns(document))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete(self, event_id: int) -> bool:
        """Delete an event. Returns False if no row has this id."""
        result = await self.db.execute(
            delete(EventRow)
            .where(EventRow.id == event_id)
        )
        return result.rowcount > 0

    async def _get_row(self, event_id: int) -> EventRow | None:
        result = await self.db.execute(
            _select_events().where(EventRow.id == event_id)
        )
        return result.scalar_one_or_none()
