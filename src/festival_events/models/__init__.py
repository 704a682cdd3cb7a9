"""Domain models for festival events."""

from festival_events.models.festival import (
    Amenities,
    CampingInfo,
    Event,
    EventDate,
    EventType,
    FestivalDocument,
    LocationInfo,
)
from festival_events.models.microevent import (
    Microevent,
    MicroeventInput,
)
from festival_events.models.collection import (
    CollectionRecord,
    CollectionSet,
    CollectionSync,
    ContentKind,
)

__all__ = [
    # Festival
    "Amenities",
    "CampingInfo",
    "Event",
    "EventDate",
    "EventType",
    "FestivalDocument",
    "LocationInfo",
    # Microevent
    "Microevent",
    "MicroeventInput",
    # Collection
    "CollectionRecord",
    "CollectionSet",
    "CollectionSync",
    "ContentKind",
]
