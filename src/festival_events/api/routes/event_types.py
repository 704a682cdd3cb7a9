"""Event type routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from festival_events.auth.dependencies import require_admin, require_super_admin
from festival_events.auth.session import Claims
from festival_events.database.connection import get_db_session
from festival_events.errors import NotFoundError
from festival_events.models.festival import EventType
from festival_events.stores.event_types import EventTypeStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[EventType])
async def list_event_types(db: AsyncSession = Depends(get_db_session)) -> list[EventType]:
    return await EventTypeStore(db).find_all()


@router.get("/{type_id}", response_model=EventType)
async def get_event_type(type_id: int, db: AsyncSession = Depends(get_db_session)) -> EventType:
    return await EventTypeStore(db).find_by_id(type_id)


@router.post("", response_model=EventType, status_code=201)
async def create_event_type(
    event_type: EventType,
    admin: Claims = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> EventType:
    """Add an event type (admin only)."""
    store = EventTypeStore(db)
    type_id = await store.create(event_type)
    await db.commit()

    logger.info(f"User {admin.user_id} created event type {type_id} ({event_type.name})")
    return await store.find_by_id(type_id)


@router.put("/{type_id}", response_model=EventType)
async def update_event_type(
    type_id: int,
    event_type: EventType,
    admin: Claims = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> EventType:
    """Rename or redescribe an event type (admin only)."""
    store = EventTypeStore(db)
    if not await store.update(type_id, event_type):
        raise NotFoundError("Event type not found")
    await db.commit()

    return await store.find_by_id(type_id)


@router.delete("/{type_id}")
async def delete_event_type(
    type_id: int,
    admin: Claims = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Delete an unused event type (super admin only)."""
    if not await EventTypeStore(db).delete(type_id):
        raise NotFoundError("Event type not found")
    await db.commit()

    logger.info(f"User {admin.user_id} deleted event type {type_id}")
    return {"status": "deleted"}
