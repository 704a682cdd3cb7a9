"""Persistence stores.

Each store wraps one `AsyncSession` and maps rows to domain models. Stores
flush but never commit; services decide where a transaction ends.
"""

from festival_events.stores.collections import CollectionStore
from festival_events.stores.event_types import EventTypeStore
from festival_events.stores.events import EventStore
from festival_events.stores.microevents import MicroeventStore
from festival_events.stores.users import UserStore

__all__ = [
    "CollectionStore",
    "EventStore",
    "EventTypeStore",
    "MicroeventStore",
    "UserStore",
]
