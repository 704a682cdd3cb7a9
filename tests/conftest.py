"""Pytest fixtures for festival events tests.

This module provides test fixtures that ensure:
1. No external calls are made (Google signing keys are never fetched)
2. Every test that touches the database gets its own SQLite file
3. Isolated test environment with controlled configuration
"""

import os
from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio

# Set test environment BEFORE importing application modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-at-least-32-characters-long")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

from festival_events.auth.session import Claims
from festival_events.config import get_settings
from festival_events.database.connection import (
    close_db,
    create_tables,
    get_db,
    init_db,
)
from festival_events.models.festival import (
    CampingInfo,
    EventDate,
    EventType,
    FestivalDocument,
    LocationInfo,
)
from festival_events.models.microevent import MicroeventInput
from festival_events.services.locks import KeyedLock
from festival_events.stores.event_types import EventTypeStore


# =============================================================================
# Test Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset settings cache before each test to ensure clean state."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database(tmp_path, monkeypatch):
    """Fresh file-backed SQLite database with all tables created."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/test.db")
    get_settings.cache_clear()

    await init_db()
    await create_tables()
    yield
    await close_db()


@pytest_asyncio.fixture
async def session(database):
    """A session on the test database."""
    async with get_db() as db:
        yield db


@pytest.fixture
def locks() -> KeyedLock:
    """A lock registry private to one test."""
    return KeyedLock()


# =============================================================================
# Identities
# =============================================================================


def make_claims(user_id: str = "user-1", role: str = "user") -> Claims:
    now = datetime.now(timezone.utc)
    return Claims(
        user_id=user_id,
        email=f"{user_id}@example.com",
        username=user_id,
        role=role,
        issued_at=now,
        expires_at=now + timedelta(hours=1),
    )


@pytest.fixture
def alice() -> Claims:
    return make_claims("alice")


@pytest.fixture
def bob() -> Claims:
    return make_claims("bob")


@pytest.fixture
def admin() -> Claims:
    return make_claims("admin", role="admin")


# =============================================================================
# Content
# =============================================================================


@pytest_asyncio.fixture
async def event_type_id(session) -> int:
    """A stored "Music Festival" event type."""
    type_id = await EventTypeStore(session).create(
        EventType(name="Music Festival", map_indicator="music", category="music")
    )
    await session.commit()
    return type_id


def make_document(
    event_type_id: int,
    name: str = "Sunrise Sound Festival",
    latitude: float | None = 35.0,
    longitude: float | None = -106.0,
    start: date | None = date(2025, 6, 13),
    end: date | None = date(2025, 6, 15),
    camping: bool = True,
) -> FestivalDocument:
    return FestivalDocument(
        name=name,
        description="Three days of music in the desert",
        event_type_id=event_type_id,
        website="https://example.com/festival",
        date_info=EventDate(start_date=start, end_date=end),
        location_info=LocationInfo(
            address="1 Mesa Road",
            latitude=latitude,
            longitude=longitude,
            venue_name="Mesa Grounds",
        ),
        camping_info=CampingInfo(camping_allowed=camping, tent_camping=camping),
    )


@pytest.fixture
def document(event_type_id) -> FestivalDocument:
    """A valid festival document of the stored event type."""
    return make_document(event_type_id)


@pytest.fixture
def microevent_input() -> MicroeventInput:
    return MicroeventInput(
        name="Sunrise yoga",
        description="Bring a mat",
        start_time=datetime(2025, 6, 14, 6, 0, tzinfo=timezone.utc),
        end_time=datetime(2025, 6, 14, 7, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def claims_factory():
    """Build claims for any user id and role."""
    return make_claims


@pytest.fixture
def document_factory(event_type_id):
    """Build festival documents of the stored event type."""

    def factory(**overrides) -> FestivalDocument:
        return make_document(event_type_id, **overrides)

    return factory
