from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)
VALID_SEVERITIES = {"critical", "error", "warning", "info"}


@dataclass(frozen=True)
class AlertRoute:
    severity: str
    escalation_tier: str


DEFAULT_ALERT_ROUTE = AlertRoute(severity="warning", escalation_tier="ops_l3")
EVENT_ALERT_ROUTES = {
    "payments_reconciliation_diff_detected": AlertRoute(
        severity="critical",
        escalation_tier="ops_l1",
    ),
    "payments_poll_errors_detected": AlertRoute(severity="error", escalation_tier="ops_l1"),
    "auto_topup_errors_detected": AlertRoute(severity="error", escalation_tier="ops_l2"),
}


def _setting_str(settings: object, attr: str) -> str:
    value = getattr(settings, attr, "")
    return value.strip() if isinstance(value, str) else ""


def _payload_text(payload: dict[str, object]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def build_alert_body(
    *,
    event: str,
    payload: dict[str, object],
    sent_at: datetime,
    app_env: str,
) -> dict[str, Any]:
    route = EVENT_ALERT_ROUTES.get(event, DEFAULT_ALERT_ROUTE)
    return {
        "event": event,
        "text": f"[{route.severity.upper()}][{route.escalation_tier}][{app_env}] {event}",
        "payload": json.loads(_payload_text(payload)),
        "sent_at": sent_at.isoformat(),
        "severity": route.severity,
        "escalation_tier": route.escalation_tier,
        "source": f"token-ledger/{app_env}",
    }


async def send_ops_alert(*, event: str, payload: dict[str, object]) -> bool:
    settings = get_settings()
    url = _setting_str(settings, "ops_alert_webhook_url")
    if not url:
        return False

    body = build_alert_body(
        event=event,
        payload=payload,
        sent_at=datetime.now(timezone.utc),
        app_env=_setting_str(settings, "app_env") or "dev",
    )
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.post(url, json=body)
            response.raise_for_status()
    except httpx.HTTPError:
        logger.exception("ops_alert_delivery_failed", alert_event=event)
        return False

    logger.info("ops_alert_delivered", alert_event=event, severity=body["severity"])
    return True
