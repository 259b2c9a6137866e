from __future__ import annotations

from datetime import datetime

from app.core.clock import as_utc
from app.economy.catalog.pricing import get_tier
from app.economy.catalog.types import Catalog
from app.economy.entitlements.types import Entitlement

FREE_TIER = "free"


def resolve_entitlement(
    catalog: Catalog,
    *,
    subscription_status: str,
    subscription_expiry: datetime | None,
    now_utc: datetime,
) -> Entitlement:
    expiry = as_utc(subscription_expiry)
    is_downgraded = (
        subscription_status != FREE_TIER and expiry is not None and expiry <= now_utc
    )
    effective_tier = FREE_TIER if is_downgraded else subscription_status
    tier = get_tier(catalog, effective_tier)
    return Entitlement(
        tier=tier.tier_id,
        chat_limit=tier.chat_limit,
        discount_multiplier=tier.discount_multiplier,
        exclusive_persona_access=tier.exclusive_persona_access,
        expires_at=None if is_downgraded or effective_tier == FREE_TIER else expiry,
        is_downgraded=is_downgraded,
    )


def can_create_chat(*, current_count: int, limit: int | None) -> bool:
    if limit is None:
        return True
    return current_count < limit
