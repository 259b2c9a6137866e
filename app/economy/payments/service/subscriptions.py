from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.subscriptions import Subscription
from app.db.repo.subscriptions_repo import SubscriptionsRepo
from app.economy.payments.errors import SubscriptionNotFoundError

logger = structlog.get_logger(__name__)


async def cancel_subscription(
    session: AsyncSession,
    *,
    user_id: int,
    subscription_id: UUID,
    now_utc: datetime,
) -> Subscription:
    subscription = await SubscriptionsRepo.get_by_id_for_update(session, subscription_id)
    if subscription is None or subscription.user_id != user_id:
        raise SubscriptionNotFoundError

    if subscription.status != "active":
        return subscription

    subscription.status = "cancelled"
    subscription.auto_renew = False
    subscription.updated_at = now_utc
    logger.info(
        "subscription_cancelled",
        user_id=user_id,
        subscription_id=str(subscription.id),
        tier=subscription.tier,
    )
    return subscription


async def list_subscription_history(
    session: AsyncSession,
    *,
    user_id: int,
) -> list[Subscription]:
    return await SubscriptionsRepo.list_for_user(session, user_id=user_id)


async def expire_subscriptions(session: AsyncSession, *, now_utc: datetime) -> int:
    expired = await SubscriptionsRepo.expire_ended(session, now_utc=now_utc)
    if expired:
        logger.info("subscriptions_expired", expired=expired)
    return expired
