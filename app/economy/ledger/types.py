from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

REASON_PURCHASE_CREDIT = "PURCHASE_CREDIT"
REASON_SUBSCRIPTION_BONUS = "SUBSCRIPTION_BONUS"
REASON_MESSAGE_CHARGE = "MESSAGE_CHARGE"
REASON_MESSAGE_UNLOCK = "MESSAGE_UNLOCK"
REASON_TIP = "TIP"
REASON_ADMIN_CREDIT = "ADMIN_CREDIT"


@dataclass(slots=True)
class LedgerResult:
    balance: Decimal
    idempotent_replay: bool
