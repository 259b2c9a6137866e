from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api.routes import access
from app.main import app

INTERNAL_TOKEN = "test-internal-token"


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def internal_client(monkeypatch) -> TestClient:
    # TestClient reports "testclient" as its peer, which is not an IP address.
    monkeypatch.setattr(access, "extract_client_ip", lambda request, trusted_proxies="": "127.0.0.1")
    return TestClient(app, headers={"X-Internal-Token": INTERNAL_TOKEN})
