from __future__ import annotations

from fastapi.testclient import TestClient

from sliding_limiter.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_limit_check_echoes_request_id():
    resp = client.post("/v1/limits/middleware-user/check", headers={"X-Request-ID": "req-check"})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == "req-check"


def test_overlong_request_id_is_replaced():
    incoming_id = "x" * 200
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    generated = resp.headers.get("X-Request-ID")
    assert generated != incoming_id
    assert len(generated) == 36


def test_request_id_with_spaces_is_replaced():
    resp = client.get("/health", headers={"X-Request-ID": "two words"})

    assert resp.headers.get("X-Request-ID") != "two words"


def test_request_id_at_length_limit_is_kept():
    incoming_id = "r" * 128
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.headers.get("X-Request-ID") == incoming_id
