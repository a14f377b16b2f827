"""Rate limiting integration tests."""

import uuid

import pytest
from fastapi import Request

from slowapi.util import get_remote_address

from complaint_hub.core.config import settings
from complaint_hub.core.rate_limiter import bearer_subject_key, limiter
from complaint_hub.main import app
from tests.fakes import bearer


def _test_key_func(request: Request) -> str:
    return request.headers.get("x-test-key", get_remote_address(request))


@app.post("/__limited")
@limiter.limit("3/minute", key_func=_test_key_func)
async def limited_endpoint(request: Request):  # pragma: no cover - exercised via tests
    return {"ok": True}


@pytest.mark.asyncio
async def test_per_endpoint_rate_limit(api_client):
    from slowapi import extension as slowapi_extension

    assert slowapi_extension._rate_limit_exceeded_handler.__name__ == "_rate_limit_handler"
    limiter.reset()
    headers = {"x-test-key": f"per-test-{uuid.uuid4()}"}
    for _ in range(3):
        response = await api_client.post("/__limited", headers=headers)
        assert response.status_code == 200

    response = await api_client.post("/__limited", headers=headers)
    assert response.status_code == 429
    assert response.json()["error"].startswith("Rate limit exceeded")


@pytest.mark.asyncio
async def test_complaint_creation_is_limited_per_identity(api_client, store):
    limiter.reset()
    allowed = int(settings.COMPLAINT_CREATE_RATE_LIMIT.split("/")[0])
    resident = store.add_resident()
    payload = {"title": "Spam", "description": "Repeated request", "category": "other"}

    for _ in range(allowed):
        response = await api_client.post("/api/v1/complaints", json=payload, headers=bearer(resident))
        assert response.status_code in (201, 409)

    response = await api_client.post("/api/v1/complaints", json=payload, headers=bearer(resident))
    assert response.status_code == 429
    assert "error" in response.json()

    other = await api_client.post(
        "/api/v1/complaints", json=payload, headers=bearer(store.add_resident())
    )
    assert other.status_code == 201


def test_bearer_subject_key_falls_back_to_address():
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(b"authorization", b"Bearer not-a-jwt")],
        "client": ("10.0.0.7", 1234),
    }

    assert bearer_subject_key(Request(scope)) == "10.0.0.7"


def test_bearer_subject_key_uses_token_subject(store):
    resident = store.add_resident()
    header = bearer(resident)["Authorization"].encode()
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(b"authorization", header)],
        "client": ("10.0.0.7", 1234),
    }

    assert bearer_subject_key(Request(scope)) == f"subject:{resident.user_id}"
