"""User collection models.

Each user has one collection record holding six id lists:

| Set | Maintained by |
|---|---|
| favorite_events, favorite_microevents | toggle / sync |
| saved_events, saved_microevents | toggle / sync |
| created_events, created_microevents | ownership grant on create, revoke on delete |

The created sets are never accepted from clients.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ContentKind(str, Enum):
    """What an id in a collection set refers to."""

    EVENT = "event"
    MICROEVENT = "microevent"


class CollectionSet(str, Enum):
    """Names of the six id lists in a collection record."""

    FAVORITE_EVENTS = "favorite_events"
    FAVORITE_MICROEVENTS = "favorite_microevents"
    SAVED_EVENTS = "saved_events"
    SAVED_MICROEVENTS = "saved_microevents"
    CREATED_EVENTS = "created_events"
    CREATED_MICROEVENTS = "created_microevents"

    @property
    def kind(self) -> ContentKind:
        if self.value.endswith("_microevents"):
            return ContentKind.MICROEVENT
        return ContentKind.EVENT

    @property
    def is_ownership(self) -> bool:
        """Whether this set records created content."""
        return self.value.startswith("created_")

    @classmethod
    def created_for(cls, kind: ContentKind) -> CollectionSet:
        if kind is ContentKind.MICROEVENT:
            return cls.CREATED_MICROEVENTS
        return cls.CREATED_EVENTS


class CollectionRecord(BaseModel):
    """A user's collection as read from the store."""

    id: int
    user_id: str
    favorite_events: list[int] = Field(default_factory=list)
    favorite_microevents: list[int] = Field(default_factory=list)
    saved_events: list[int] = Field(default_factory=list)
    saved_microevents: list[int] = Field(default_factory=list)
    created_events: list[int] = Field(default_factory=list)
    created_microevents: list[int] = Field(default_factory=list)
    version: int = 0

    def ids(self, which: CollectionSet) -> list[int]:
        """Return the live list for one set (mutations are visible on the record)."""
        return getattr(self, which.value)


class CollectionSync(BaseModel):
    """Bulk replacement of a user's favorites and saves, as sent by clients.

    Unknown keys (including any `created_*` lists) are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    user_id: str
    favorite_events: list[int] = Field(default_factory=list)
    favorite_microevents: list[int] = Field(default_factory=list)
    saved_events: list[int] = Field(default_factory=list)
    saved_microevents: list[int] = Field(default_factory=list)
