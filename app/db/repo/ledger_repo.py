from __future__ import annotations

from decimal import Decimal

from sqlalchemy import distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.ledger_entries import LedgerEntry
from app.db.models.payments import Payment
from app.db.models.users import User


class LedgerRepo:
    @staticmethod
    async def increment_balance(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal,
    ) -> Decimal | None:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(balance=User.balance + amount)
            .returning(User.balance)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def decrement_balance_if_sufficient(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal,
    ) -> Decimal | None:
        stmt = (
            update(User)
            .where(User.id == user_id, User.balance >= amount)
            .values(balance=User.balance - amount)
            .returning(User.balance)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_balance(session: AsyncSession, user_id: int) -> Decimal | None:
        stmt = select(User.balance).where(User.id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_idempotency_key(
        session: AsyncSession, idempotency_key: str
    ) -> LedgerEntry | None:
        stmt = select(LedgerEntry).where(LedgerEntry.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, entry: LedgerEntry) -> LedgerEntry:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def list_for_user(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 50,
    ) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .limit(max(1, min(500, int(limit))))
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def count_payment_credits(session: AsyncSession, *, payment_id) -> int:
        stmt = select(func.count(LedgerEntry.id)).where(
            LedgerEntry.payment_id == payment_id,
            LedgerEntry.direction == "CREDIT",
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def count_distinct_payment_credits(session: AsyncSession) -> int:
        stmt = select(func.count(distinct(LedgerEntry.payment_id))).where(
            LedgerEntry.payment_id.is_not(None),
            LedgerEntry.direction == "CREDIT",
            LedgerEntry.reason.in_(("PURCHASE_CREDIT", "SUBSCRIPTION_BONUS")),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def sum_payment_credits_by_type(session: AsyncSession) -> dict[str, Decimal]:
        stmt = (
            select(Payment.type, func.coalesce(func.sum(LedgerEntry.amount), 0))
            .select_from(LedgerEntry)
            .join(Payment, Payment.id == LedgerEntry.payment_id)
            .where(
                LedgerEntry.direction == "CREDIT",
                LedgerEntry.reason.in_(("PURCHASE_CREDIT", "SUBSCRIPTION_BONUS")),
            )
            .group_by(Payment.type)
        )
        result = await session.execute(stmt)
        return {payment_type: Decimal(str(total or 0)) for payment_type, total in result.all()}
