from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from app.economy.payments.types import PendingCheckout

OUTCOME_INITIATED = "initiated"
OUTCOME_ABOVE_THRESHOLD = "above_threshold"
OUTCOME_IN_FLIGHT = "in_flight"
OUTCOME_COOLDOWN = "cooldown"
OUTCOME_INVALID_PACKAGE = "invalid_package"
OUTCOME_SKIPPED = "skipped"


@dataclass(slots=True)
class AutoTopupSettingsView:
    user_id: int
    enabled: bool
    threshold_amount: Decimal
    package_id: str | None
    payment_method_id: str | None
    last_topup_at: datetime | None


@dataclass(slots=True)
class AutoTopupClaim:
    outcome: str
    pending: PendingCheckout | None = None
    previous_topup_at: datetime | None = None
