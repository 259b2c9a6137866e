from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.subscriptions import Subscription


class SubscriptionsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, subscription_id: UUID) -> Subscription | None:
        return await session.get(Subscription, subscription_id)

    @staticmethod
    async def get_by_id_for_update(
        session: AsyncSession,
        subscription_id: UUID,
    ) -> Subscription | None:
        stmt = select(Subscription).where(Subscription.id == subscription_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_payment_id(session: AsyncSession, payment_id: UUID) -> Subscription | None:
        stmt = select(Subscription).where(Subscription.payment_id == payment_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_current_for_update(
        session: AsyncSession,
        *,
        user_id: int,
        now_utc: datetime,
    ) -> Subscription | None:
        stmt = (
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status.in_(("active", "cancelled")),
                Subscription.end_date > now_utc,
            )
            .order_by(Subscription.end_date.desc())
            .limit(1)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_latest(session: AsyncSession, *, user_id: int) -> Subscription | None:
        stmt = (
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.start_date.desc(), Subscription.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_user(session: AsyncSession, *, user_id: int) -> list[Subscription]:
        stmt = (
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.start_date.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, subscription: Subscription) -> Subscription:
        session.add(subscription)
        await session.flush()
        return subscription

    @staticmethod
    async def expire_ended(session: AsyncSession, *, now_utc: datetime) -> int:
        stmt = (
            update(Subscription)
            .where(
                Subscription.status.in_(("active", "cancelled")),
                Subscription.end_date <= now_utc,
            )
            .values(status="expired", updated_at=now_utc)
            .returning(Subscription.id)
        )
        result = await session.execute(stmt)
        return len(result.all())
