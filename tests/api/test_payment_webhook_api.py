from __future__ import annotations

import asyncio
from decimal import Decimal
import json
from types import SimpleNamespace

from fastapi.testclient import TestClient

from app.api.routes import payment_webhook
from app.economy.payments.providers.mock import MockPaymentProvider
from app.economy.payments.signature import compute_signature
from tests.integration.ledger_fixtures import _create_user


def _charge_event(code: str, *, event_type: str = "charge:confirmed", amount: str = "4.99") -> dict:
    return {
        "event": {
            "type": event_type,
            "data": {
                "code": code,
                "pricing": {"local": {"amount": amount, "currency": "USD"}},
            },
        }
    }


def _purchase_basic_pack(internal_client: TestClient) -> tuple[int, str]:
    user_id = asyncio.run(_create_user(balance="0"))
    response = internal_client.post("/purchases", json={"user_id": user_id, "package_id": "basic"})
    assert response.status_code == 201
    return user_id, response.json()["external_payment_id"]


def test_confirmed_charge_credits_once(internal_client) -> None:
    user_id, code = _purchase_basic_pack(internal_client)

    first = internal_client.post("/webhooks/payments", json=_charge_event(code))
    replay = internal_client.post("/webhooks/payments", json=_charge_event(code))

    assert first.status_code == 200
    assert first.json()["status"] == "processed"
    assert first.json()["credited"] is True
    assert replay.status_code == 200
    assert replay.json()["credited"] is False
    assert replay.json()["idempotent_replay"] is True

    balance = internal_client.get(f"/users/{user_id}/balance")
    assert Decimal(balance.json()["balance"]) == Decimal("100")


def test_underpaid_charge_is_rejected(internal_client) -> None:
    user_id, code = _purchase_basic_pack(internal_client)

    response = internal_client.post("/webhooks/payments", json=_charge_event(code, amount="1.00"))

    assert response.status_code == 409
    assert response.json() == {"detail": {"code": "PAYMENT_AMOUNT_MISMATCH"}}
    assert Decimal(internal_client.get(f"/users/{user_id}/balance").json()["balance"]) == 0


def test_unknown_charge_returns_404(client) -> None:
    response = client.post("/webhooks/payments", json=_charge_event("UNKNOWN1"))

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "PAYMENT_NOT_FOUND"}}


def test_invalid_json_returns_400(client) -> None:
    response = client.post(
        "/webhooks/payments",
        content=b"{not-json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"detail": {"code": "INVALID_PAYLOAD"}}


def test_irrelevant_event_is_ignored(client) -> None:
    response = client.post("/webhooks/payments", json=_charge_event("ABC", event_type="charge:created"))

    assert response.status_code == 200
    assert response.json() == {"status": "ignored"}


def test_signature_is_enforced_outside_mock_mode(monkeypatch, client) -> None:
    provider = MockPaymentProvider(webhook_secret="whsec")
    monkeypatch.setattr(
        payment_webhook,
        "get_settings",
        lambda: SimpleNamespace(payment_provider_mode="charge_api"),
    )
    monkeypatch.setattr(payment_webhook, "get_payment_provider", lambda: provider)
    body = json.dumps(_charge_event("ABC", event_type="charge:created")).encode("utf-8")

    missing = client.post("/webhooks/payments", content=body)
    forged = client.post(
        "/webhooks/payments",
        content=body,
        headers={"X-Payment-Signature": compute_signature("other", body)},
    )
    signed = client.post(
        "/webhooks/payments",
        content=body,
        headers={"X-Payment-Signature": compute_signature("whsec", body)},
    )

    assert missing.status_code == 401
    assert missing.json() == {"detail": {"code": "INVALID_SIGNATURE"}}
    assert forged.status_code == 401
    assert signed.status_code == 200
    assert signed.json() == {"status": "ignored"}
