from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: int) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, user_id: int) -> User | None:
        stmt = select(User).where(User.id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        email: str | None = None,
        balance: Decimal = Decimal("0"),
        subscription_status: str = "free",
        subscription_expiry: datetime | None = None,
        role: str = "user",
        created_at: datetime | None = None,
    ) -> User:
        user = User(
            email=email,
            balance=balance,
            subscription_status=subscription_status,
            subscription_expiry=subscription_expiry,
            role=role,
            created_at=created_at or datetime.now(timezone.utc),
        )
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def set_subscription(
        session: AsyncSession,
        *,
        user_id: int,
        subscription_status: str,
        subscription_expiry: datetime | None,
    ) -> int:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                subscription_status=subscription_status,
                subscription_expiry=subscription_expiry,
            )
        )
        result = await session.execute(stmt)
        return result.rowcount or 0
