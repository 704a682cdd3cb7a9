"""Business logic on top of the stores.

Services own transactions: they validate and authorize, then write and
commit. Collection changes always go through `CollectionEngine`.
"""

from festival_events.services.collection_engine import (
    CollectionEngine,
    Hydrated,
    OwnershipRepair,
)
from festival_events.services.events import EventService
from festival_events.services.locks import KeyedLock, user_locks
from festival_events.services.microevents import MicroeventService

__all__ = [
    "CollectionEngine",
    "Hydrated",
    "OwnershipRepair",
    "EventService",
    "KeyedLock",
    "user_locks",
    "MicroeventService",
]
