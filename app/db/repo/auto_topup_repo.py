from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.auto_topup_settings import AutoTopupSettings


class AutoTopupRepo:
    @staticmethod
    async def get_by_user_id(session: AsyncSession, user_id: int) -> AutoTopupSettings | None:
        stmt = select(AutoTopupSettings).where(AutoTopupSettings.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_user_id_for_update(
        session: AsyncSession,
        user_id: int,
    ) -> AutoTopupSettings | None:
        stmt = (
            select(AutoTopupSettings)
            .where(AutoTopupSettings.user_id == user_id)
            .with_for_update(skip_locked=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert(
        session: AsyncSession,
        *,
        user_id: int,
        enabled: bool,
        threshold_amount: Decimal,
        package_id: str,
        payment_method_id: str | None,
        now_utc: datetime,
    ) -> AutoTopupSettings:
        settings = await AutoTopupRepo.get_by_user_id(session, user_id)
        if settings is None:
            settings = AutoTopupSettings(user_id=user_id, last_topup_at=None, created_at=now_utc)
            session.add(settings)
        settings.enabled = enabled
        settings.threshold_amount = threshold_amount
        settings.package_id = package_id
        settings.payment_method_id = payment_method_id
        settings.updated_at = now_utc
        await session.flush()
        return settings

    @staticmethod
    async def list_enabled_user_ids(
        session: AsyncSession,
        *,
        after_id: int | None,
        limit: int,
    ) -> list[tuple[int, int]]:
        stmt = (
            select(AutoTopupSettings.id, AutoTopupSettings.user_id)
            .where(
                AutoTopupSettings.enabled.is_(True),
                AutoTopupSettings.payment_method_id.is_not(None),
            )
            .order_by(AutoTopupSettings.id.asc())
            .limit(max(1, int(limit)))
        )
        if after_id is not None:
            stmt = stmt.where(AutoTopupSettings.id > after_id)
        result = await session.execute(stmt)
        return [(int(row_id), int(user_id)) for row_id, user_id in result.all()]

    @staticmethod
    async def mark_topped_up(session: AsyncSession, *, user_id: int, now_utc: datetime) -> None:
        stmt = (
            update(AutoTopupSettings)
            .where(AutoTopupSettings.user_id == user_id)
            .values(last_topup_at=now_utc, updated_at=now_utc)
        )
        await session.execute(stmt)

    @staticmethod
    async def restore_last_topup(
        session: AsyncSession,
        *,
        user_id: int,
        last_topup_at: datetime | None,
        now_utc: datetime,
    ) -> None:
        stmt = (
            update(AutoTopupSettings)
            .where(AutoTopupSettings.user_id == user_id)
            .values(last_topup_at=last_topup_at, updated_at=now_utc)
        )
        await session.execute(stmt)
