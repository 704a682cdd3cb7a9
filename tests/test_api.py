"""HTTP tests for the API routes."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from festival_events.api import create_app
from festival_events.auth.google import GoogleIdentity, get_google_verifier
from festival_events.auth.session import create_session_token
from festival_events.database.connection import get_db
from festival_events.database.models import UserEventDataRow
from festival_events.stores.users import UserStore


@pytest.fixture
def verifier():
    """A Google verifier that accepts any credential as Ada's."""
    mock = MagicMock()
    mock.is_configured = True
    mock.verify = AsyncMock(
        return_value=GoogleIdentity(
            subject="google-ada",
            email="ada@example.com",
            email_verified=True,
            name="Ada",
            picture=None,
        )
    )
    return mock


@pytest_asyncio.fixture
async def client(database, verifier):
    app = create_app()
    app.dependency_overrides[get_google_verifier] = lambda: verifier
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user(session):
    """Store a user and return (user_id, auth headers)."""

    async def factory(name: str, role: str = "user") -> tuple[str, dict]:
        users = UserStore(session)
        user = await users.create("google", f"google-{name}", name, f"{name}@example.com")
        if role != "user":
            user.role = role
        user_id = user.id
        token = create_session_token(user_id, user.email, name, role)
        await session.commit()
        return user_id, {"Authorization": f"Bearer {token}"}

    return factory


def event_body(document) -> dict:
    return document.model_dump(mode="json")


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuthentication:
    async def test_missing_token(self, client):
        response = await client.get("/api/collection")

        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_invalid_token(self, client):
        response = await client.get(
            "/api/collection", headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 401

    async def test_token_for_deleted_user(self, client):
        token = create_session_token("no-such-user", None, "Ghost", "user")

        response = await client.get(
            "/api/collection", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401

    async def test_signup_then_login(self, client, verifier):
        signup = await client.post("/auth/google/signup", json={"credential": "id-token"})

        assert signup.status_code == 201
        body = signup.json()
        assert body["user"]["user_name"] == "Ada"
        assert body["user"]["role"] == "user"
        verifier.verify.assert_awaited_with("id-token")

        login = await client.post("/auth/google/login", json={"credential": "id-token"})
        assert login.status_code == 200
        assert login.json()["user"]["id"] == body["user"]["id"]
        assert login.json()["user"]["login_count"] == 2

        me = await client.get(
            "/auth/me", headers={"Authorization": f"Bearer {login.json()['token']}"}
        )
        assert me.status_code == 200
        assert me.json()["email"] == "ada@example.com"

    async def test_signup_twice_conflicts(self, client):
        await client.post("/auth/google/signup", json={"credential": "id-token"})

        response = await client.post("/auth/google/signup", json={"credential": "id-token"})

        assert response.status_code == 409
        assert response.json()["error"] == "CONFLICT"

    async def test_login_without_account(self, client):
        response = await client.post("/auth/google/login", json={"credential": "id-token"})

        assert response.status_code == 409

    async def test_sign_in_not_configured(self, client, verifier):
        verifier.is_configured = False

        response = await client.post("/auth/google/login", json={"credential": "id-token"})

        assert response.status_code == 501


class TestUsers:
    async def test_admin_routes_need_admin(self, client, make_user):
        _, headers = await make_user("alice")

        response = await client.get("/api/users", headers=headers)

        assert response.status_code == 403
        assert response.json()["error"] == "FORBIDDEN"

    async def test_admin_lists_users(self, client, make_user):
        await make_user("alice")
        _, headers = await make_user("root", role="admin")

        response = await client.get("/api/users", headers=headers)

        assert response.status_code == 200
        assert response.json()["total"] == 2

    async def test_locked_out_user_is_rejected(self, client, make_user):
        alice_id, alice_headers = await make_user("alice")
        _, admin_headers = await make_user("root", role="admin")

        locked = await client.post(
            f"/api/users/{alice_id}/lockout",
            json={"reason": "spam"},
            headers=admin_headers,
        )
        assert locked.status_code == 200

        response = await client.get("/api/collection", headers=alice_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "spam"

        await client.delete(f"/api/users/{alice_id}/lockout", headers=admin_headers)
        response = await client.get("/api/collection", headers=alice_headers)
        assert response.status_code == 200

    async def test_role_change_applies_to_existing_sessions(self, client, make_user):
        alice_id, alice_headers = await make_user("alice")
        _, root_headers = await make_user("root", role="super_admin")

        response = await client.put(
            f"/api/users/{alice_id}/role", json={"role": "admin"}, headers=root_headers
        )
        assert response.status_code == 200

        response = await client.get("/api/users", headers=alice_headers)
        assert response.status_code == 200

    async def test_admin_cannot_change_roles(self, client, make_user):
        alice_id, _ = await make_user("alice")
        _, headers = await make_user("root", role="admin")

        response = await client.put(
            f"/api/users/{alice_id}/role", json={"role": "admin"}, headers=headers
        )

        assert response.status_code == 403

    async def test_update_own_profile(self, client, make_user):
        _, headers = await make_user("alice")

        response = await client.put(
            "/api/users/me",
            json={"user_name": "Alice L", "timezone": "Europe/Oslo", "language": "nb"},
            headers=headers,
        )

        assert response.status_code == 200
        profile = (await client.get("/api/users/me", headers=headers)).json()
        assert profile["user_name"] == "Alice L"
        assert profile["email"] == "alice@example.com"
        assert profile["timezone"] == "Europe/Oslo"
        assert profile["language"] == "nb"

    async def test_new_email_is_unverified(self, client, make_user):
        _, headers = await make_user("alice")

        response = await client.put(
            "/api/users/me", json={"email": "alice@new.org"}, headers=headers
        )

        assert response.json()["email"] == "alice@new.org"
        assert response.json()["email_verified"] is False

    @pytest.mark.parametrize(
        "body", [{"email": "alice-at-example"}, {"user_name": "a"}, {"user_name": "   "}]
    )
    async def test_invalid_profile_update(self, client, make_user, body):
        _, headers = await make_user("alice")

        response = await client.put("/api/users/me", json=body, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"
        profile = (await client.get("/api/users/me", headers=headers)).json()
        assert profile["user_name"] == "alice"

    async def test_profile_by_id_for_self_only(self, client, make_user):
        alice_id, alice_headers = await make_user("alice")
        bob_id, bob_headers = await make_user("bob")

        assert (await client.get(f"/api/users/{alice_id}", headers=alice_headers)).status_code == 200
        assert (await client.get(f"/api/users/{alice_id}", headers=bob_headers)).status_code == 403

        response = await client.put(
            f"/api/users/{alice_id}", json={"language": "de"}, headers=bob_headers
        )
        assert response.status_code == 403
        profile = (await client.get("/api/users/me", headers=alice_headers)).json()
        assert profile["language"] is None

    async def test_admin_edits_any_profile(self, client, make_user):
        alice_id, _ = await make_user("alice")
        _, headers = await make_user("root", role="admin")

        response = await client.put(
            f"/api/users/{alice_id}", json={"timezone": "UTC"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["timezone"] == "UTC"
        response = await client.get(f"/api/users/{alice_id}", headers=headers)
        assert response.json()["timezone"] == "UTC"

    async def test_profile_of_missing_user(self, client, make_user):
        _, headers = await make_user("root", role="admin")

        response = await client.get("/api/users/no-such-user", headers=headers)

        assert response.status_code == 404

    async def test_super_admin_deletes_user(self, client, make_user):
        alice_id, alice_headers = await make_user("alice")
        _, root_headers = await make_user("root", role="super_admin")
        toggled = await client.post(
            "/api/collection/events/5/favorite", headers=alice_headers
        )
        assert toggled.status_code == 200

        response = await client.delete(f"/api/users/{alice_id}", headers=root_headers)

        assert response.status_code == 200
        assert response.json() == {"status": "deleted"}
        response = await client.get(f"/api/users/{alice_id}", headers=root_headers)
        assert response.status_code == 404
        response = await client.get("/api/collection", headers=alice_headers)
        assert response.status_code == 401
        async with get_db() as db:
            row = await db.scalar(
                select(UserEventDataRow).where(UserEventDataRow.user_id == alice_id)
            )
        assert row is None

    async def test_admin_cannot_delete_users(self, client, make_user):
        alice_id, _ = await make_user("alice")
        _, headers = await make_user("root", role="admin")

        response = await client.delete(f"/api/users/{alice_id}", headers=headers)

        assert response.status_code == 403

    async def test_cannot_delete_self(self, client, make_user):
        root_id, headers = await make_user("root", role="super_admin")

        response = await client.delete(f"/api/users/{root_id}", headers=headers)

        assert response.status_code == 400

    async def test_delete_missing_user(self, client, make_user):
        _, headers = await make_user("root", role="super_admin")

        response = await client.delete("/api/users/no-such-user", headers=headers)

        assert response.status_code == 404


class TestEventTypes:
    async def test_public_read(self, client, event_type_id):
        response = await client.get("/api/event-types")

        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["Music Festival"]

    async def test_create_needs_admin(self, client, make_user):
        _, headers = await make_user("alice")

        response = await client.post(
            "/api/event-types", json={"name": "Car Show"}, headers=headers
        )

        assert response.status_code == 403

    async def test_duplicate_name(self, client, make_user, event_type_id):
        _, headers = await make_user("root", role="admin")

        response = await client.post(
            "/api/event-types", json={"name": "Music Festival"}, headers=headers
        )

        assert response.status_code == 409


class TestEvents:
    async def test_create_records_ownership(self, client, make_user, document):
        _, headers = await make_user("alice")

        created = await client.post("/api/events", json=event_body(document), headers=headers)

        assert created.status_code == 201
        event_id = created.json()["id"]
        collection = await client.get("/api/collection", headers=headers)
        assert collection.json()["created_events"] == [event_id]

        mine = await client.get("/api/collection/events/created", headers=headers)
        assert [e["id"] for e in mine.json()] == [event_id]
        assert "X-Unresolved-References" not in mine.headers

    async def test_invalid_document(self, client, make_user, document_factory):
        _, headers = await make_user("alice")
        document = document_factory(latitude=91.0)

        response = await client.post("/api/events", json=event_body(document), headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_only_owner_updates(self, client, make_user, document):
        _, alice = await make_user("alice")
        _, bob = await make_user("bob")
        event_id = (
            await client.post("/api/events", json=event_body(document), headers=alice)
        ).json()["id"]

        body = event_body(document.model_copy(update={"name": "Renamed"}))
        denied = await client.put(f"/api/events/{event_id}", json=body, headers=bob)
        allowed = await client.put(f"/api/events/{event_id}", json=body, headers=alice)

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["name"] == "Renamed"

    async def test_missing_event(self, client):
        response = await client.get("/api/events/999")

        assert response.status_code == 404
        assert response.json() == {"error": "NOT_FOUND", "message": "Event not found"}

    async def test_delete_reports_dangling_favorites(self, client, make_user, document):
        _, headers = await make_user("alice")
        event_id = (
            await client.post("/api/events", json=event_body(document), headers=headers)
        ).json()["id"]
        await client.post(f"/api/collection/events/{event_id}/favorite", headers=headers)

        deleted = await client.delete(f"/api/events/{event_id}", headers=headers)
        favorites = await client.get("/api/collection/events/favorites", headers=headers)
        collection = await client.get("/api/collection", headers=headers)

        assert deleted.json() == {"status": "deleted"}
        assert favorites.status_code == 200
        assert favorites.json() == []
        assert favorites.headers["X-Unresolved-References"] == "1"
        assert collection.json()["created_events"] == []

    async def test_search_needs_whole_location(self, client):
        response = await client.get("/api/events/search", params={"latitude": 35.0})

        assert response.status_code == 400

    async def test_nearby_search(self, client, make_user, document_factory):
        _, headers = await make_user("alice")
        near = document_factory(name="Near", latitude=35.0, longitude=-106.0)
        far = document_factory(name="Far", latitude=40.0, longitude=-100.0)
        for document in (near, far):
            await client.post("/api/events", json=event_body(document), headers=headers)

        response = await client.get(
            "/api/events/search",
            params={"latitude": 35.01, "longitude": -106.01, "radius_miles": 25},
        )

        assert [e["name"] for e in response.json()] == ["Near"]


class TestMicroevents:
    async def test_create_under_event(self, client, make_user, document, microevent_input):
        _, headers = await make_user("alice")
        event_id = (
            await client.post("/api/events", json=event_body(document), headers=headers)
        ).json()["id"]

        created = await client.post(
            f"/api/events/{event_id}/microevents",
            json=microevent_input.model_dump(mode="json"),
            headers=headers,
        )

        assert created.status_code == 201
        micro_id = created.json()["id"]
        listed = await client.get(f"/api/events/{event_id}/microevents")
        assert [m["id"] for m in listed.json()] == [micro_id]
        collection = await client.get("/api/collection", headers=headers)
        assert collection.json()["created_microevents"] == [micro_id]

    async def test_archive_needs_owner(self, client, make_user, document, microevent_input):
        _, alice = await make_user("alice")
        _, bob = await make_user("bob")
        event_id = (
            await client.post("/api/events", json=event_body(document), headers=alice)
        ).json()["id"]
        micro_id = (
            await client.post(
                f"/api/events/{event_id}/microevents",
                json=microevent_input.model_dump(mode="json"),
                headers=alice,
            )
        ).json()["id"]

        denied = await client.post(f"/api/microevents/{micro_id}/archive", headers=bob)
        allowed = await client.post(f"/api/microevents/{micro_id}/archive", headers=alice)

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["archive"] is True


class TestCollection:
    async def test_first_access_creates_empty_record(self, client, make_user):
        alice_id, headers = await make_user("alice")

        response = await client.get("/api/collection", headers=headers)

        body = response.json()
        assert body["user_id"] == alice_id
        assert body["favorite_events"] == []
        assert body["version"] == 0

    async def test_toggle_on_and_off(self, client, make_user):
        _, headers = await make_user("alice")

        on = await client.post("/api/collection/microevents/7/save", headers=headers)
        off = await client.post("/api/collection/microevents/7/save", headers=headers)

        assert on.json() == {
            "collection": "saved_microevents",
            "item_id": 7,
            "active": True,
            "ids": [7],
        }
        assert off.json()["active"] is False
        assert off.json()["ids"] == []

    async def test_sync_keeps_created(self, client, make_user, document):
        _, headers = await make_user("alice")
        event_id = (
            await client.post("/api/events", json=event_body(document), headers=headers)
        ).json()["id"]
        record = (await client.get("/api/collection", headers=headers)).json()

        response = await client.put(
            "/api/collection/sync",
            json={
                "id": record["id"],
                "user_id": record["user_id"],
                "favorite_events": [3, 1, 3],
                "saved_microevents": [9],
                "created_events": [],
            },
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["favorite_events"] == [3, 1]
        assert body["saved_microevents"] == [9]
        assert body["created_events"] == [event_id]
        assert body["version"] == record["version"] + 1

    async def test_sync_someone_elses_collection(self, client, make_user):
        _, alice = await make_user("alice")
        _, bob = await make_user("bob")
        record = (await client.get("/api/collection", headers=alice)).json()

        response = await client.put(
            "/api/collection/sync",
            json={"id": record["id"], "user_id": record["user_id"]},
            headers=bob,
        )

        assert response.status_code == 403
