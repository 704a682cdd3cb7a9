"""Microevent models.

Microevents are smaller activities scheduled inside a festival: a workshop,
a set on a side stage, a group meetup. They belong to exactly one parent
event and one owning user.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class MicroeventInput(BaseModel):
    """Client payload for creating or updating a microevent.

    `event_id` may be omitted when the parent event is given in the URL.
    The owner is always taken from the caller's session, never the payload.
    """

    event_id: int | None = None
    name: str = ""
    description: str | None = None
    archive: bool = False
    start_time: datetime | None = None
    end_time: datetime | None = None


class Microevent(BaseModel):
    """A stored microevent."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    user_id: str
    name: str
    archive: bool = False
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
