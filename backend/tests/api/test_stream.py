"""
Tests for the live complaint stream.
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from complaint_hub.core.exceptions import StoreFailure
from complaint_hub.core.rate_limiter import limiter
from complaint_hub.core.security import create_access_token
from complaint_hub.main import app
from complaint_hub.services.change_feed import InMemoryChangeFeed, get_change_feed
from complaint_hub.services.sync import COMPLAINTS_TABLE
from tests.conftest import clear_overrides, install_overrides
from tests.fakes import bearer

STREAM = "/api/v1/complaints/stream"


@pytest.fixture
def client(monkeypatch, store, feed):
    async def noop():
        return None

    for name in ("init_db", "close_db", "close_redis", "close_change_feed"):
        monkeypatch.setattr(f"complaint_hub.main.{name}", noop)
    monkeypatch.setattr("complaint_hub.main.setup_logging", lambda: None)

    limiter.reset()
    install_overrides(app, store, feed)
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        clear_overrides(app)


def _token(actor) -> str:
    return create_access_token({"sub": str(actor.user_id)})


def test_snapshot_on_connect_and_after_change(client, store):
    resident = store.add_resident()
    existing = store.add_complaint(resident)
    store.add_complaint(store.add_resident())

    with client.websocket_connect(f"{STREAM}?token={_token(resident)}") as websocket:
        first = websocket.receive_json()
        assert first["type"] == "snapshot"
        assert [c["id"] for c in first["complaints"]] == [str(existing.id)]

        response = client.post(
            "/api/v1/complaints",
            json={
                "title": "Leaking tap",
                "description": "The tap in room 4 leaks all night",
                "category": "water",
            },
            headers=bearer(resident),
        )
        assert response.status_code == 201

        second = websocket.receive_json()
        assert [c["id"] for c in second["complaints"]] == [
            response.json()["id"],
            str(existing.id),
        ]


def test_status_filter_applies_to_snapshots(client, store, feed):
    admin = store.add_admin()
    resident = store.add_resident()
    store.add_complaint(resident)

    with client.websocket_connect(
        f"{STREAM}?token={_token(admin)}&status=in_progress"
    ) as websocket:
        assert websocket.receive_json()["complaints"] == []

    assert feed.subscriber_count(COMPLAINTS_TABLE) == 0


def test_missing_token_closes_with_policy_violation(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(STREAM) as websocket:
            websocket.receive_json()

    assert exc.value.code == 1008


def test_invalid_filter_closes_with_policy_violation(client, store):
    admin = store.add_admin()

    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"{STREAM}?token={_token(admin)}&status=closed") as ws:
            ws.receive_json()

    assert exc.value.code == 1008


class UnavailableFeed(InMemoryChangeFeed):
    async def subscribe(self, table):
        raise StoreFailure("Change feed unavailable")


def test_unavailable_feed_closes_with_internal_error(client, store):
    resident = store.add_resident()

    async def unavailable_feed():
        return UnavailableFeed()

    app.dependency_overrides[get_change_feed] = unavailable_feed

    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f"{STREAM}?token={_token(resident)}") as websocket:
            websocket.receive_json()

    assert exc.value.code == 1011
