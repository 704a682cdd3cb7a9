"""Event routes.

Reads are public. Creating requires a session; updating and deleting require
being the creator or an admin.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.auth.dependencies import get_claims
from festival_events.auth.session import Claims
from festival_events.database.connection import get_db_session
from festival_events.models.festival import Event, FestivalDocument
from festival_events.models.microevent import Microevent, MicroeventInput
from festival_events.services.events import EventService
from festival_events.services.microevents import MicroeventService

router = APIRouter()


def get_event_service(db: AsyncSession = Depends(get_db_session)) -> EventService:
    return EventService(db)


def get_microevent_service(db: AsyncSession = Depends(get_db_session)) -> MicroeventService:
    return MicroeventService(db)


@router.get("", response_model=list[Event])
async def list_events(service: EventService = Depends(get_event_service)) -> list[Event]:
    return await service.find_all()


@router.get("/search", response_model=list[Event])
async def search_events(
    latitude: float | None = Query(default=None),
    longitude: float | None = Query(default=None),
    radius_miles: float | None = Query(default=None),
    event_type: int | None = Query(default=None, description="Event type id"),
    service: EventService = Depends(get_event_service),
) -> list[Event]:
    """Nearby search when a point and radius are given, else filter by type."""
    return await service.search(
        latitude=latitude,
        longitude=longitude,
        radius_miles=radius_miles,
        event_type_id=event_type,
    )


@router.get("/{event_id}", response_model=Event)
async def get_event(
    event_id: int, service: EventService = Depends(get_event_service)
) -> Event:
    return await service.find_by_id(event_id)


@router.post("", response_model=Event, status_code=201)
async def create_event(
    document: FestivalDocument,
    claims: Claims = Depends(get_claims),
    service: EventService = Depends(get_event_service),
) -> Event:
    return await service.create(document, claims)


@router.put("/{event_id}", response_model=Event)
async def update_event(
    event_id: int,
    document: FestivalDocument,
    claims: Claims = Depends(get_claims),
    service: EventService = Depends(get_event_service),
) -> Event:
    return await service.update(event_id, document, claims)


@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    claims: Claims = Depends(get_claims),
    service: EventService = Depends(get_event_service),
) -> dict:
    await service.delete(event_id, claims)
    return {"status": "deleted"}


# Microevents of one event


@router.get("/{event_id}/microevents", response_model=list[Microevent])
async def list_event_microevents(
    event_id: int,
    service: MicroeventService = Depends(get_microevent_service),
) -> list[Microevent]:
    return await service.find_by_event(event_id)


@router.post("/{event_id}/microevents", response_model=Microevent, status_code=201)
async def create_event_microevent(
    event_id: int,
    data: MicroeventInput,
    claims: Claims = Depends(get_claims),
    service: MicroeventService = Depends(get_microevent_service),
) -> Microevent:
    return await service.create(data, claims, event_id=event_id)
