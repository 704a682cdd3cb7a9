"""Tests for the event service."""

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from festival_events.errors import (
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from festival_events.services.events import EventService
from festival_events.stores.collections import CollectionStore


@pytest.fixture
def service(session, locks) -> EventService:
    return EventService(session, locks)


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": "   "},
            {"latitude": 90.5},
            {"latitude": -91.0},
            {"longitude": 180.1},
        ],
    )
    async def test_invalid_documents_are_rejected(self, service, alice, document_factory, overrides):
        with pytest.raises(ValidationError):
            await service.create(document_factory(**overrides), alice)

        assert await service.find_all() == []
        assert (await service.engine.get("alice")).created_events == []

    async def test_blank_description(self, service, alice, document):
        with pytest.raises(ValidationError):
            await service.create(document.model_copy(update={"description": ""}), alice)

    async def test_end_before_start(self, service, alice, document_factory):
        with pytest.raises(ValidationError):
            await service.create(
                document_factory(start=date(2025, 6, 15), end=date(2025, 6, 13)), alice
            )

    async def test_unknown_event_type(self, service, alice, document):
        with pytest.raises(ValidationError):
            await service.create(document.model_copy(update={"event_type_id": 999}), alice)

    async def test_boundary_coordinates_are_valid(self, service, alice, document_factory):
        event = await service.create(document_factory(latitude=-90.0, longitude=180.0), alice)

        assert event.latitude == -90.0


class TestCreate:
    async def test_create_grants_ownership(self, service, alice, document):
        event = await service.create(document, alice)

        assert event.owner_user_id == "alice"
        record = await service.engine.get("alice")
        assert record.created_events == [event.id]

    async def test_failed_grant_leaves_no_event(self, service, alice, document, monkeypatch):
        """Event row and ownership entry commit together or not at all."""

        async def broken_replace(self, record):
            raise OperationalError("UPDATE user_event_data", {}, Exception("disk full"))

        monkeypatch.setattr(CollectionStore, "replace", broken_replace)

        with pytest.raises(DatabaseError):
            await service.create(document, alice)

        assert await service.find_all() == []


class TestUpdate:
    async def test_owner_can_update(self, service, alice, document, document_factory):
        event = await service.create(document, alice)

        updated = await service.update(event.id, document_factory(name="New Name"), alice)

        assert updated.name == "New Name"
        assert updated.details.name == "New Name"

    async def test_non_owner_is_forbidden(self, service, alice, bob, document, document_factory):
        event = await service.create(document, alice)

        with pytest.raises(ForbiddenError):
            await service.update(event.id, document_factory(name="Hijacked"), bob)

        assert (await service.find_by_id(event.id)).name == document.name

    async def test_admin_can_update(self, service, alice, admin, document, document_factory):
        event = await service.create(document, alice)

        updated = await service.update(event.id, document_factory(name="Moderated"), admin)

        assert updated.name == "Moderated"
        assert updated.owner_user_id == "alice"

    async def test_admin_update_of_missing_event(self, service, admin, document):
        with pytest.raises(NotFoundError):
            await service.update(999, document, admin)


class TestDelete:
    async def test_owner_delete_revokes_ownership(self, service, alice, document):
        event = await service.create(document, alice)

        await service.delete(event.id, alice)

        with pytest.raises(NotFoundError):
            await service.find_by_id(event.id)
        assert (await service.engine.get("alice")).created_events == []

    async def test_non_owner_delete_is_forbidden(self, service, alice, bob, document):
        event = await service.create(document, alice)

        with pytest.raises(ForbiddenError):
            await service.delete(event.id, bob)

        assert (await service.find_by_id(event.id)).id == event.id

    async def test_admin_delete_revokes_from_owner(self, service, alice, admin, document):
        """The owner's set is cleaned up, not the admin's."""
        event = await service.create(document, alice)

        await service.delete(event.id, admin)

        assert (await service.engine.get("alice")).created_events == []
        assert (await service.engine.get("admin")).created_events == []

    async def test_admin_delete_of_missing_event(self, service, admin):
        with pytest.raises(NotFoundError):
            await service.delete(999, admin)


class TestSearch:
    async def test_nearby_search(self, service, alice, document_factory):
        near = await service.create(document_factory(latitude=0.1, longitude=0.1), alice)
        await service.create(document_factory(latitude=10.0, longitude=10.0), alice)

        events = await service.search(latitude=0.0, longitude=0.0, radius_miles=10)

        assert [e.id for e in events] == [near.id]

    async def test_partial_location_is_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.search(latitude=0.0, longitude=0.0)

    async def test_type_only_search(self, service, alice, document):
        event = await service.create(document, alice)

        events = await service.search(event_type_id=document.event_type_id)
        assert [e.id for e in events] == [event.id]
        assert await service.search(event_type_id=999) == []

    async def test_no_filters_lists_everything(self, service, alice, document):
        await service.create(document, alice)

        assert len(await service.search()) == 1
