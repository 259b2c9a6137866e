from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.catalog_versions import CatalogVersion


class CatalogVersionsRepo:
    @staticmethod
    async def get_active(session: AsyncSession) -> CatalogVersion | None:
        stmt = select(CatalogVersion).where(CatalogVersion.is_active.is_(True))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_max_version(session: AsyncSession) -> int:
        stmt = select(func.coalesce(func.max(CatalogVersion.version), 0))
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def publish(
        session: AsyncSession,
        *,
        version: int,
        payload: dict[str, object],
        published_by_user_id: int | None,
        now_utc: datetime,
    ) -> CatalogVersion:
        await session.execute(
            update(CatalogVersion)
            .where(CatalogVersion.is_active.is_(True))
            .values(is_active=False)
        )
        row = CatalogVersion(
            version=version,
            payload=payload,
            is_active=True,
            published_by_user_id=published_by_user_id,
            created_at=now_utc,
        )
        session.add(row)
        await session.flush()
        return row
