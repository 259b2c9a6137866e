from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class Entitlement:
    tier: str
    chat_limit: int | None
    discount_multiplier: Decimal
    exclusive_persona_access: bool
    expires_at: datetime | None
    is_downgraded: bool


@dataclass(slots=True)
class ChatAllowance:
    can_create: bool
    current_count: int
    limit: int | None
    tier: str


@dataclass(slots=True)
class SubscriptionView:
    tier: str
    status: str
    expires_at: datetime | None
    chat_limit: int | None
    exclusive_persona_access: bool
    discount_multiplier: Decimal
    auto_renew: bool
