from __future__ import annotations

from decimal import Decimal

from app.economy.payments.providers.charge_events import latest_charge_status, parse_charge_event


def _event(event_type: str, *, code: str | None = "CHG123") -> dict[str, object]:
    charge: dict[str, object] = {"pricing": {"local": {"amount": "9.99", "currency": "usd"}}}
    if code is not None:
        charge["code"] = code
    return {"event": {"type": event_type, "data": {"object": charge}}}


def test_confirmed_charge_maps_to_completed_with_amount() -> None:
    event = parse_charge_event(_event("charge:confirmed"))

    assert event is not None
    assert event.external_payment_id == "CHG123"
    assert event.status == "completed"
    assert event.amount == Decimal("9.99")
    assert event.currency == "USD"


def test_pending_and_failed_events_map_to_lifecycle_statuses() -> None:
    assert parse_charge_event(_event("charge:pending")).status == "processing"
    assert parse_charge_event(_event("charge:failed")).status == "failed"


def test_unrelated_or_incomplete_events_are_ignored() -> None:
    assert parse_charge_event(_event("charge:created")) is None
    assert parse_charge_event(_event("charge:confirmed", code=None)) is None
    assert parse_charge_event({"event": "not-an-object"}) is None
    assert parse_charge_event({}) is None


def test_latest_charge_status_reads_newest_timeline_entry() -> None:
    charge = {
        "status": "NEW",
        "timeline": [
            {"time": "2026-03-01T10:00:00Z", "status": "NEW"},
            {"time": "2026-03-01T10:05:00Z", "status": "COMPLETED"},
            {"time": "2026-03-01T10:02:00Z", "status": "PENDING"},
        ],
    }
    assert latest_charge_status(charge) == "COMPLETED"
    assert latest_charge_status({"status": "expired"}) == "EXPIRED"
