from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from gatekeeper.core.app_factory import create_app


@pytest.fixture
def client(installed_engine) -> TestClient:
    return TestClient(create_app())


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/v1/ping")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None
