from __future__ import annotations

from decimal import Decimal, InvalidOperation

from app.economy.payments.providers.base import WebhookEvent

EVENT_STATUS_MAP = {
    "charge:pending": "processing",
    "charge:confirmed": "completed",
    "charge:resolved": "completed",
    "charge:failed": "failed",
}

CHARGE_STATUS_MAP = {
    "NEW": "pending",
    "SIGNED": "pending",
    "PENDING": "processing",
    "COMPLETED": "completed",
    "CONFIRMED": "completed",
    "RESOLVED": "completed",
    "EXPIRED": "failed",
    "CANCELED": "failed",
    "UNRESOLVED": "failed",
}


def parse_money(pricing: object) -> tuple[Decimal | None, str | None]:
    if not isinstance(pricing, dict):
        return None, None
    local = pricing.get("local")
    if not isinstance(local, dict):
        return None, None
    raw_amount = local.get("amount")
    currency = local.get("currency")
    try:
        amount = Decimal(str(raw_amount)) if raw_amount is not None else None
    except InvalidOperation:
        amount = None
    return amount, currency.upper() if isinstance(currency, str) else None


def latest_charge_status(charge: dict[str, object]) -> str:
    timeline = charge.get("timeline")
    if isinstance(timeline, list) and timeline:
        entries = [entry for entry in timeline if isinstance(entry, dict)]
        if entries:
            latest = max(entries, key=lambda entry: str(entry.get("time", "")))
            return str(latest.get("status", "NEW")).upper()
    return str(charge.get("status", "NEW")).upper()


def parse_charge_event(payload: dict[str, object]) -> WebhookEvent | None:
    event = payload.get("event")
    if not isinstance(event, dict):
        return None
    event_type = event.get("type")
    status = EVENT_STATUS_MAP.get(event_type) if isinstance(event_type, str) else None
    if status is None:
        return None

    data = event.get("data")
    charge = data.get("object", data) if isinstance(data, dict) else None
    if not isinstance(charge, dict):
        return None
    external_payment_id = charge.get("code") or charge.get("id")
    if not isinstance(external_payment_id, str) or not external_payment_id:
        return None

    amount, currency = parse_money(charge.get("pricing"))
    return WebhookEvent(
        event_type=event_type,
        external_payment_id=external_payment_id,
        status=status,
        amount=amount,
        currency=currency,
        raw=payload,
    )
