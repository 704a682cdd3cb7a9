"""Microevent routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from festival_events.api.routes.events import get_microevent_service
from festival_events.auth.dependencies import get_claims
from festival_events.auth.session import Claims
from festival_events.models.microevent import Microevent, MicroeventInput
from festival_events.services.microevents import MicroeventService

router = APIRouter()


@router.get("", response_model=list[Microevent])
async def list_microevents(
    service: MicroeventService = Depends(get_microevent_service),
) -> list[Microevent]:
    return await service.find_all()


@router.get("/active", response_model=list[Microevent])
async def list_active_microevents(
    service: MicroeventService = Depends(get_microevent_service),
) -> list[Microevent]:
    """Microevents that are not archived."""
    return await service.find_active()


@router.get("/{microevent_id}", response_model=Microevent)
async def get_microevent(
    microevent_id: int,
    service: MicroeventService = Depends(get_microevent_service),
) -> Microevent:
    return await service.find_by_id(microevent_id)


@router.post("", response_model=Microevent, status_code=201)
async def create_microevent(
    data: MicroeventInput,
    claims: Claims = Depends(get_claims),
    service: MicroeventService = Depends(get_microevent_service),
) -> Microevent:
    """Create a microevent in the event given by `event_id`."""
    return await service.create(data, claims)


@router.put("/{microevent_id}", response_model=Microevent)
async def update_microevent(
    microevent_id: int,
    data: MicroeventInput,
    claims: Claims = Depends(get_claims),
    service: MicroeventService = Depends(get_microevent_service),
) -> Microevent:
    return await service.update(microevent_id, data, claims)


@router.delete("/{microevent_id}")
async def delete_microevent(
    microevent_id: int,
    claims: Claims = Depends(get_claims),
    service: MicroeventService = Depends(get_microevent_service),
) -> dict:
    await service.delete(microevent_id, claims)
    return {"status": "deleted"}


@router.post("/{microevent_id}/archive", response_model=Microevent)
async def archive_microevent(
    microevent_id: int,
    claims: Claims = Depends(get_claims),
    service: MicroeventService = Depends(get_microevent_service),
) -> Microevent:
    return await service.archive(microevent_id, claims)


@router.post("/{microevent_id}/unarchive", response_model=Microevent)
async def unarchive_microevent(
    microevent_id: int,
    claims: Claims = Depends(get_claims),
    service: MicroeventService = Depends(get_microevent_service),
) -> Microevent:
    return await service.unarchive(microevent_id, claims)
