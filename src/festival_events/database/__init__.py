"""Database module for festival events.

This module provides:
- SQLAlchemy async database connection
- Event, microevent, event type, user and user-collection models
"""

from festival_events.database.connection import (
    get_db,
    get_db_session,
    get_session_factory,
    init_db,
    close_db,
    create_tables,
    DatabaseSession,
)
from festival_events.database.models import (
    Base,
    User,
    EventTypeRow,
    EventRow,
    MicroeventRow,
    UserEventDataRow,
)

__all__ = [
    # Connection
    "get_db",
    "get_db_session",
    "get_session_factory",
    "init_db",
    "close_db",
    "create_tables",
    "DatabaseSession",
    # Models
    "Base",
    "User",
    "EventTypeRow",
    "EventRow",
    "MicroeventRow",
    "UserEventDataRow",
]
