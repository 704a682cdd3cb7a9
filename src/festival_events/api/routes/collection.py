"""Collection routes: the caller's favorites, saves and created content.

## Hydrated lists

The `GET .../created|favorites|saved` routes return full events or
microevents. Ids whose content has been deleted are left out of the body,
and the number left out is reported in the `X-Unresolved-References` header.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.auth.dependencies import get_claims
from festival_events.auth.session import Claims
from festival_events.database.connection import get_db_session
from festival_events.models.collection import CollectionRecord, CollectionSet, CollectionSync
from festival_events.models.festival import Event
from festival_events.models.microevent import Microevent
from festival_events.services.collection_engine import CollectionEngine

router = APIRouter()

UNRESOLVED_HEADER = "X-Unresolved-References"


class ToggleResponse(BaseModel):
    """Result of a favorite/save toggle."""

    collection: CollectionSet
    item_id: int
    active: bool
    ids: list[int]


def get_engine(db: AsyncSession = Depends(get_db_session)) -> CollectionEngine:
    return CollectionEngine(db)


async def _toggle(
    engine: CollectionEngine, item_id: int, claims: Claims, which: CollectionSet
) -> ToggleResponse:
    ids = await engine.toggle(item_id, claims.user_id, which)
    return ToggleResponse(collection=which, item_id=item_id, active=item_id in ids, ids=ids)


async def _hydrate(
    engine: CollectionEngine, claims: Claims, which: CollectionSet, response: Response
) -> list:
    hydrated = await engine.hydrate(claims.user_id, which)
    if hydrated.unresolved:
        response.headers[UNRESOLVED_HEADER] = str(hydrated.unresolved)
    return hydrated.items


@router.get("", response_model=CollectionRecord)
async def get_collection(
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> CollectionRecord:
    return await engine.get(claims.user_id)


@router.put("/sync", response_model=CollectionRecord)
async def sync_collection(
    dto: CollectionSync,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> CollectionRecord:
    """Replace favorites and saves in bulk. Created sets are never taken from the body."""
    return await engine.sync(dto, claims)


# Toggles


@router.post("/events/{event_id}/favorite", response_model=ToggleResponse)
async def toggle_favorite_event(
    event_id: int,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> ToggleResponse:
    return await _toggle(engine, event_id, claims, CollectionSet.FAVORITE_EVENTS)


@router.post("/events/{event_id}/save", response_model=ToggleResponse)
async def toggle_saved_event(
    event_id: int,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> ToggleResponse:
    return await _toggle(engine, event_id, claims, CollectionSet.SAVED_EVENTS)


@router.post("/microevents/{microevent_id}/favorite", response_model=ToggleResponse)
async def toggle_favorite_microevent(
    microevent_id: int,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> ToggleResponse:
    return await _toggle(engine, microevent_id, claims, CollectionSet.FAVORITE_MICROEVENTS)


@router.post("/microevents/{microevent_id}/save", response_model=ToggleResponse)
async def toggle_saved_microevent(
    microevent_id: int,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> ToggleResponse:
    return await _toggle(engine, microevent_id, claims, CollectionSet.SAVED_MICROEVENTS)


# Hydrated lists


@router.get("/events/created", response_model=list[Event])
async def created_events(
    response: Response,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> list[Event]:
    return await _hydrate(engine, claims, CollectionSet.CREATED_EVENTS, response)


@router.get("/events/favorites", response_model=list[Event])
async def favorite_events(
    response: Response,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> list[Event]:
    return await _hydrate(engine, claims, CollectionSet.FAVORITE_EVENTS, response)


@router.get("/events/saved", response_model=list[Event])
async def saved_events(
    response: Response,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> list[Event]:
    return await _hydrate(engine, claims, CollectionSet.SAVED_EVENTS, response)


@router.get("/microevents/created", response_model=list[Microevent])
async def created_microevents(
    response: Response,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> list[Microevent]:
    return await _hydrate(engine, claims, CollectionSet.CREATED_MICROEVENTS, response)


@router.get("/microevents/favorites", response_model=list[Microevent])
async def favorite_microevents(
    response: Response,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> list[Microevent]:
    return await _hydrate(engine, claims, CollectionSet.FAVORITE_MICROEVENTS, response)


@router.get("/microevents/saved", response_model=list[Microevent])
async def saved_microevents(
    response: Response,
    claims: Claims = Depends(get_claims),
    engine: CollectionEngine = Depends(get_engine),
) -> list[Microevent]:
    return await _hydrate(engine, claims, CollectionSet.SAVED_MICROEVENTS, response)
