from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.middleware import MAX_REQUEST_ID_LENGTH, resolve_request_id


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert isinstance(generated, str)

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None


def test_error_body_carries_request_id(client: TestClient):
    resp = client.get("/api/v1/public/missing", headers={"X-Request-ID": "trace-42"})

    assert resp.status_code == 404
    assert resp.headers.get("X-Request-ID") == "trace-42"
    assert resp.json()["error"]["request_id"] == "trace-42"


@pytest.mark.parametrize(
    "incoming",
    ["a" * (MAX_REQUEST_ID_LENGTH + 1), "id with spaces", "id;injected=1"],
)
def test_unsafe_request_id_is_replaced(client: TestClient, incoming: str):
    resp = client.get("/health", headers={"X-Request-ID": incoming})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") != incoming
    assert len(resp.headers["X-Request-ID"]) == 36


def test_resolve_request_id():
    assert resolve_request_id("trace.42:abc_DEF-1") == "trace.42:abc_DEF-1"
    assert resolve_request_id("a" * MAX_REQUEST_ID_LENGTH) == "a" * MAX_REQUEST_ID_LENGTH
    assert resolve_request_id(None) != resolve_request_id(None)
    assert resolve_request_id("") != ""
    assert resolve_request_id("bad/id") != "bad/id"
