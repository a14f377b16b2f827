"""Tests for notification utilities."""

import asyncio
import logging
from types import SimpleNamespace

import httpx
import pytest
from prometheus_client import REGISTRY

from complaint_hub.core.config import settings
from complaint_hub.utils.notifications import BackgroundNotifier, NotificationService


@pytest.mark.asyncio
async def test_send_slack_no_webhook(monkeypatch):
    monkeypatch.setattr(settings, "SLACK_WEBHOOK_URL", "")

    called = False

    async def fake_post(*_args, **_kwargs):
        nonlocal called
        called = True
        return SimpleNamespace(raise_for_status=lambda: None)

    class DummyClient:
        async def __aenter__(self):  # pragma: no cover - used implicitly
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def post(self, *args, **kwargs):
            return await fake_post(*args, **kwargs)

    monkeypatch.setattr("httpx.AsyncClient", DummyClient)

    await NotificationService.send_slack("hello")
    assert called is False


@pytest.mark.asyncio
async def test_send_slack_posts_message(monkeypatch):
    monkeypatch.setattr(settings, "SLACK_WEBHOOK_URL", "https://slack.test/webhook")

    recorded = {}

    class DummyResponse:
        def raise_for_status(self):
            return None

    class DummyClient:
        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def post(self, url, json, timeout):
            recorded.update({"url": url, "json": json, "timeout": timeout})
            return DummyResponse()

    monkeypatch.setattr("httpx.AsyncClient", DummyClient)

    await NotificationService.send_slack("ping", channel="#maintenance")
    assert recorded["url"] == "https://slack.test/webhook"
    assert recorded["json"]["text"] == "ping"
    assert recorded["json"]["channel"] == "#maintenance"


@pytest.mark.asyncio
async def test_send_slack_retries_then_gives_up(monkeypatch):
    monkeypatch.setattr(settings, "SLACK_WEBHOOK_URL", "https://slack.test/webhook")
    # Skip the real backoff between attempts
    monkeypatch.setattr(NotificationService._post_slack.retry, "sleep", _no_sleep)

    attempts = 0

    class DummyClient:
        async def __aenter__(self):
            return self

        async def __aexit__(self, exc_type, exc, tb):
            return False

        async def post(self, url, json, timeout):
            nonlocal attempts
            attempts += 1
            raise httpx.ConnectError("connection refused")

    monkeypatch.setattr("httpx.AsyncClient", DummyClient)
    before = REGISTRY.get_sample_value(
        "complaint_hub_external_api_retries_total", {"service": "slack"}
    ) or 0.0

    # Delivery failures are logged, not raised
    await NotificationService.send_slack("ping")

    after = REGISTRY.get_sample_value(
        "complaint_hub_external_api_retries_total", {"service": "slack"}
    ) or 0.0
    assert attempts == 3
    assert after == pytest.approx(before + 2)


async def _no_sleep(_seconds):
    return None


@pytest.mark.asyncio
async def test_notification_wrappers(monkeypatch):
    captured = []

    async def fake_send(message, channel=None):
        captured.append((message, channel))

    monkeypatch.setattr(NotificationService, "send_slack", fake_send)

    complaint = {
        "id": "c-1",
        "title": "No water on floor 3",
        "priority": "high",
        "hostel_name": "North",
        "block": "B",
        "room_number": "301",
    }
    await NotificationService.notify_worker_assigned(complaint, "plumber")
    await NotificationService.notify_awaiting_confirmation(complaint)

    assert len(captured) == 2
    assert "plumber" in captured[0][0]
    assert "North, B, 301" in captured[0][0]
    assert "c-1" in captured[1][0]


class _StubNotifier:
    def __init__(self):
        self.release = asyncio.Event()
        self.delivered = []

    async def notify_worker_assigned(self, complaint, worker_type):
        await self.release.wait()
        self.delivered.append(("assigned", complaint["id"], worker_type))

    async def notify_awaiting_confirmation(self, complaint):
        raise RuntimeError("webhook exploded")


@pytest.mark.asyncio
async def test_background_notifier_returns_before_delivery():
    stub = _StubNotifier()
    background = BackgroundNotifier(stub)

    task = background.notify_worker_assigned({"id": "c-1"}, "plumber")

    assert background.pending == 1
    assert stub.delivered == []

    stub.release.set()
    await task

    assert stub.delivered == [("assigned", "c-1", "plumber")]
    assert background.pending == 0


@pytest.mark.asyncio
async def test_background_notifier_close_cancels_hung_deliveries():
    stub = _StubNotifier()
    background = BackgroundNotifier(stub)
    task = background.notify_worker_assigned({"id": "c-1"}, None)

    await background.close(timeout=0.01)

    assert task.cancelled()
    assert background.pending == 0
    assert stub.delivered == []


@pytest.mark.asyncio
async def test_background_notifier_logs_failures(caplog):
    background = BackgroundNotifier(_StubNotifier())

    with caplog.at_level(logging.ERROR, logger="complaint_hub.utils.notifications"):
        task = background.notify_awaiting_confirmation({"id": "c-2"})
        await asyncio.wait({task})
        await asyncio.sleep(0)

    assert background.pending == 0
    assert any("Notification task failed" in record.getMessage() for record in caplog.records)
