from __future__ import annotations

from types import SimpleNamespace

from app.api.routes import access


def test_internal_route_rejects_missing_token(client) -> None:
    response = client.get("/users/1/balance")

    assert response.status_code == 401
    assert response.json() == {"detail": {"code": "UNAUTHORIZED"}}


def test_internal_route_rejects_disallowed_ip(monkeypatch, client) -> None:
    monkeypatch.setattr(
        access,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token="internal-secret",
            internal_api_allowlist="192.168.0.0/16",
            internal_api_trusted_proxies="",
        ),
    )
    monkeypatch.setattr(access, "extract_client_ip", lambda request, trusted_proxies="": "10.0.0.25")

    response = client.get(
        "/users/1/balance",
        headers={"X-Internal-Token": "internal-secret"},
    )

    assert response.status_code == 401
    assert response.json() == {"detail": {"code": "UNAUTHORIZED"}}


def test_internal_route_accepts_token_from_allowed_ip(internal_client) -> None:
    response = internal_client.get("/users/999/balance")

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "USER_NOT_FOUND"}}


def test_webhook_route_does_not_require_internal_token(client) -> None:
    response = client.post("/webhooks/payments", json={"event": {"type": "charge:created"}})

    assert response.status_code == 200
    assert response.json() == {"status": "ignored"}
