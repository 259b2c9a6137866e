from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc
from app.db.models.payments import Payment
from app.db.models.subscriptions import Subscription
from app.db.repo.subscriptions_repo import SubscriptionsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.catalog.pricing import get_tier
from app.economy.catalog.store import catalog_store
from app.economy.ledger.errors import UserNotFoundError

logger = structlog.get_logger(__name__)


async def _activate_subscription(
    session: AsyncSession,
    *,
    payment: Payment,
    now_utc: datetime,
) -> Subscription:
    existing = await SubscriptionsRepo.get_by_payment_id(session, payment.id)
    if existing is not None:
        return existing

    user = await UsersRepo.get_by_id_for_update(session, payment.user_id)
    if user is None:
        raise UserNotFoundError

    catalog = await catalog_store.get(session)
    tier = get_tier(catalog, payment.tier_id or "")

    starts_at = now_utc
    current = await SubscriptionsRepo.get_current_for_update(
        session,
        user_id=payment.user_id,
        now_utc=now_utc,
    )
    if current is not None:
        if current.tier == tier.tier_id:
            # Same-tier renewal extends the running period.
            starts_at = max(now_utc, as_utc(current.end_date))
        current.status = "expired"
        current.auto_renew = False
        current.updated_at = now_utc

    ends_at = starts_at + timedelta(days=tier.duration_days)
    subscription = await SubscriptionsRepo.create(
        session,
        subscription=Subscription(
            id=uuid4(),
            user_id=payment.user_id,
            payment_id=payment.id,
            tier=tier.tier_id,
            price=payment.amount,
            status="active",
            start_date=starts_at,
            end_date=ends_at,
            auto_renew=True,
            bonus_tokens_granted=payment.bonus_tokens,
            discount_multiplier=tier.discount_multiplier,
            created_at=now_utc,
            updated_at=now_utc,
        ),
    )
    await UsersRepo.set_subscription(
        session,
        user_id=payment.user_id,
        subscription_status=tier.tier_id,
        subscription_expiry=ends_at,
    )
    logger.info(
        "subscription_activated",
        user_id=payment.user_id,
        subscription_id=str(subscription.id),
        tier=tier.tier_id,
        end_date=ends_at.isoformat(),
        extended=current is not None and current.tier == tier.tier_id,
    )
    return subscription
