from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.free_message_usage import FreeMessageUsage
from app.db.repo.dialect import conflict_insert


class FreeMessagesRepo:
    @staticmethod
    async def get(session: AsyncSession, user_id: int) -> FreeMessageUsage | None:
        stmt = select(FreeMessageUsage).where(FreeMessageUsage.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def ensure_row(session: AsyncSession, *, user_id: int, now_utc: datetime) -> None:
        stmt = (
            conflict_insert(session, FreeMessageUsage.__table__)
            .values(user_id=user_id, used_count=0, window_started_at=now_utc, updated_at=now_utc)
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        await session.execute(stmt)

    @staticmethod
    async def restart_window_if_elapsed(
        session: AsyncSession,
        *,
        user_id: int,
        window_cutoff_utc: datetime,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(FreeMessageUsage)
            .where(
                FreeMessageUsage.user_id == user_id,
                FreeMessageUsage.window_started_at <= window_cutoff_utc,
            )
            .values(used_count=0, window_started_at=now_utc, updated_at=now_utc)
            .returning(FreeMessageUsage.user_id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def increment_if_below(
        session: AsyncSession,
        *,
        user_id: int,
        cap: int,
        now_utc: datetime,
    ) -> int | None:
        stmt = (
            update(FreeMessageUsage)
            .where(FreeMessageUsage.user_id == user_id, FreeMessageUsage.used_count < cap)
            .values(used_count=FreeMessageUsage.used_count + 1, updated_at=now_utc)
            .returning(FreeMessageUsage.used_count)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
