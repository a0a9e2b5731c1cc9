"""Integration tests for the notification API endpoints."""

from __future__ import annotations

from uuid import uuid4

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from shelfnote.application.use_cases.notifications import FanOutDispatcher
from shelfnote.infrastructure.database import SessionLocal
from shelfnote.infrastructure.security import create_access_token
from shelfnote.interfaces.api.dependencies import get_dispatcher


@pytest.fixture()
def app():
    from main import create_app

    return create_app()


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def _auth(user) -> dict[str, str]:
    token = create_access_token(user.id, role=user.role)
    return {"Authorization": f"Bearer {token}"}


def _publish(client, admin, **payload):
    body = {
        "type": "SYSTEM_ALERT",
        "title": "Reading room closed",
        "message": "The reading room is closed today.",
    }
    body.update(payload)
    return client.post("/notifications", json=body, headers=_auth(admin))


def test_feed_requires_authentication(client):
    response = client.get("/notifications")

    assert response.status_code == 401


def test_token_for_unknown_user_is_rejected(client):
    token = create_access_token(uuid4(), role="member")

    response = client.get("/notifications", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_inactive_user_is_rejected(client, make_user):
    reader = make_user(is_active=False)

    response = client.get("/notifications", headers=_auth(reader))

    assert response.status_code == 401


def test_publish_read_and_mark_flow(client, make_admin, make_user):
    admin = make_admin()
    reader = make_user()

    created = _publish(
        client,
        admin,
        user_ids=[str(reader.id)],
        object={"kind": "book", "id": str(uuid4()), "title": "Emma"},
        metadata={"branch": "east"},
    )
    assert created.status_code == 201
    event_id = created.json()["id"]

    feed = client.get("/notifications", headers=_auth(reader))
    assert feed.status_code == 200
    body = feed.json()
    assert body["next_cursor"] is None
    [item] = body["items"]
    assert item["id"] == event_id
    assert item["type"] == "SYSTEM_ALERT"
    assert item["is_read"] is False
    assert item["object"]["kind"] == "book"
    assert item["object"]["title"] == "Emma"
    assert item["metadata"] == {"branch": "east"}
    assert item["created_at"].endswith("Z")

    assert client.get("/notifications/unread_count", headers=_auth(reader)).json() == {
        "count": 1
    }

    first = client.post(f"/notifications/{event_id}/read", headers=_auth(reader))
    second = client.post(f"/notifications/{event_id}/read", headers=_auth(reader))
    assert first.json() == {"changed": True}
    assert second.json() == {"changed": False}
    assert client.get("/notifications/unread_count", headers=_auth(reader)).json() == {
        "count": 0
    }


def test_broadcast_and_mark_all_read(client, make_admin, make_user):
    admin = make_admin()
    reader = make_user()
    assert _publish(client, admin, broadcast=True).status_code == 201
    assert _publish(client, admin, user_ids=[str(reader.id)]).status_code == 201

    response = client.post("/notifications/mark_all_read", headers=_auth(reader))

    assert response.status_code == 200
    assert response.json() == {"updated": 2}
    assert client.get("/notifications/unread_count", headers=_auth(reader)).json() == {
        "count": 0
    }


def test_pagination_through_next_cursor(client, make_admin, make_user):
    admin = make_admin()
    reader = make_user()
    published = {
        _publish(client, admin, user_ids=[str(reader.id)], title=f"Notice {index}").json()["id"]
        for index in range(5)
    }

    seen = []
    cursor = None
    while True:
        params = {"limit": 2}
        if cursor:
            params["cursor"] = cursor
        body = client.get("/notifications", params=params, headers=_auth(reader)).json()
        seen.extend(item["id"] for item in body["items"])
        cursor = body["next_cursor"]
        if cursor is None:
            break

    assert len(seen) == 5
    assert set(seen) == published


def test_members_cannot_publish(client, make_user):
    member = make_user()

    response = _publish(client, member, broadcast=True)

    assert response.status_code == 403


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "PARTY", "broadcast": True},
        {"title": "", "broadcast": True},
        {"user_ids": []},
        {"broadcast": True, "metadata": {"deep": {"x": 1}}},
    ],
)
def test_invalid_publish_returns_validation_error(client, make_admin, payload):
    admin = make_admin()

    response = _publish(client, admin, **payload)

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_publish_to_unknown_user(client, make_admin):
    admin = make_admin()

    response = _publish(client, admin, user_ids=[str(uuid4())])

    assert response.status_code == 400
    assert response.json()["error"] == "UnknownUser"


def test_mark_read_errors(client, make_admin, make_user):
    admin = make_admin()
    owner = make_user()
    stranger = make_user()
    event_id = _publish(client, admin, user_ids=[str(owner.id)]).json()["id"]

    missing = client.post(f"/notifications/{uuid4()}/read", headers=_auth(owner))
    hidden = client.post(f"/notifications/{event_id}/read", headers=_auth(stranger))

    assert missing.status_code == 404
    assert missing.json()["error"] == "EventNotFound"
    assert hidden.status_code == 403
    assert hidden.json()["error"] == "NotVisible"


@pytest.mark.parametrize(
    "params",
    [{"cursor": "%%%"}, {"limit": 0}, {"limit": "many"}],
)
def test_invalid_feed_parameters(client, make_user, params):
    reader = make_user()

    response = client.get("/notifications", params=params, headers=_auth(reader))

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_fan_out_endpoint(app, client, clock, dedup_cache, make_admin, make_user, make_book, make_reservation):
    admin = make_admin()
    holders = [make_user(), make_user()]
    book_id = make_book(title="Beloved")
    for holder in holders:
        make_reservation(book_id, holder.id)
    dispatcher = FanOutDispatcher(SessionLocal, dedup_cache=dedup_cache, clock=clock)
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    payload = {
        "trigger": {"kind": "book_available", "book_id": str(book_id), "title": "Beloved"},
        "trigger_key": f"restock:{book_id}",
    }
    first = client.post("/notifications/fan-out", json=payload, headers=_auth(admin))
    second = client.post("/notifications/fan-out", json=payload, headers=_auth(admin))

    assert first.status_code == 200
    report = first.json()
    assert report["ok"] == 2
    assert report["failed"] == []
    assert len(report["event_ids"]) == 2
    assert second.json()["deduplicated"] is True
    for holder in holders:
        count = client.get("/notifications/unread_count", headers=_auth(holder)).json()
        assert count == {"count": 1}


def test_fan_out_rejects_unknown_trigger_kind(client, make_admin):
    admin = make_admin()

    response = client.post(
        "/notifications/fan-out",
        json={"trigger": {"kind": "meteor_strike"}},
        headers=_auth(admin),
    )

    assert response.status_code == 400
