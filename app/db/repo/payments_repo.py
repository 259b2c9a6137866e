from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.payments import Payment

CREDIT_BEARING_TYPES = ("credit_purchase", "subscription")
OPEN_STATUSES = ("pending", "processing")


class PaymentsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, payment_id: UUID) -> Payment | None:
        return await session.get(Payment, payment_id)

    @staticmethod
    async def get_by_external_id(session: AsyncSession, external_payment_id: str) -> Payment | None:
        stmt = select(Payment).where(Payment.external_payment_id == external_payment_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_external_id_for_update(
        session: AsyncSession,
        external_payment_id: str,
    ) -> Payment | None:
        stmt = (
            select(Payment)
            .where(Payment.external_payment_id == external_payment_id)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, payment: Payment) -> Payment:
        session.add(payment)
        await session.flush()
        return payment

    @staticmethod
    async def transition_status(
        session: AsyncSession,
        *,
        payment_id: UUID,
        from_status: str,
        to_status: str,
        now_utc: datetime,
        raw_provider_payload: dict[str, object] | None = None,
    ) -> bool:
        values: dict[str, object] = {"status": to_status, "updated_at": now_utc}
        if to_status == "completed":
            values["completed_at"] = now_utc
        if raw_provider_payload is not None:
            values["raw_provider_payload"] = raw_provider_payload
        stmt = (
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == from_status)
            .values(**values)
            .returning(Payment.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def has_open_payment(
        session: AsyncSession,
        *,
        user_id: int,
        payment_type: str,
        source: str,
    ) -> bool:
        stmt = (
            select(Payment.id)
            .where(
                Payment.user_id == user_id,
                Payment.type == payment_type,
                Payment.source == source,
                Payment.status.in_(OPEN_STATUSES),
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_open_older_than(
        session: AsyncSession,
        *,
        older_than_utc: datetime,
        limit: int = 100,
    ) -> list[Payment]:
        stmt = (
            select(Payment)
            .where(
                Payment.status.in_(OPEN_STATUSES),
                Payment.external_payment_id.is_not(None),
                Payment.created_at <= older_than_utc,
            )
            .order_by(Payment.created_at.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def fail_stale_pending(
        session: AsyncSession,
        *,
        older_than_utc: datetime,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(Payment)
            .where(Payment.status == "pending", Payment.created_at <= older_than_utc)
            .values(status="failed", updated_at=now_utc)
            .returning(Payment.id)
        )
        result = await session.execute(stmt)
        return len(result.all())

    @staticmethod
    async def list_for_user(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 50,
    ) -> list[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc())
            .limit(max(1, min(500, int(limit))))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_completed_credit_bearing(session: AsyncSession) -> int:
        stmt = select(func.count(Payment.id)).where(
            Payment.status == "completed",
            Payment.type.in_(CREDIT_BEARING_TYPES),
            (Payment.tokens_amount + Payment.bonus_tokens) > 0,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def sum_expected_credits_by_type(session: AsyncSession) -> dict[str, Decimal]:
        stmt = (
            select(
                Payment.type,
                func.coalesce(func.sum(Payment.tokens_amount + Payment.bonus_tokens), 0),
            )
            .where(
                Payment.status == "completed",
                Payment.type.in_(CREDIT_BEARING_TYPES),
            )
            .group_by(Payment.type)
        )
        result = await session.execute(stmt)
        return {payment_type: Decimal(str(total or 0)) for payment_type, total in result.all()}

    @staticmethod
    async def count_open_older_than(session: AsyncSession, *, older_than_utc: datetime) -> int:
        stmt = select(func.count(Payment.id)).where(
            Payment.status.in_(OPEN_STATUSES),
            Payment.created_at <= older_than_utc,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)
