from __future__ import annotations

import time
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.repo.catalog_versions_repo import CatalogVersionsRepo
from app.economy.catalog.defaults import build_default_catalog
from app.economy.catalog.payload import catalog_from_payload, catalog_to_payload
from app.economy.catalog.types import Catalog

logger = structlog.get_logger(__name__)


class CatalogStore:
    """Process-local cache over the active persisted catalog version.

    Every instance reads the same ``catalog_versions`` row, so all processes
    converge on the published catalog within one refresh interval.
    """

    def __init__(self, *, refresh_seconds: int | None = None) -> None:
        self._refresh_seconds = refresh_seconds
        self._cached: Catalog | None = None
        self._loaded_at: float | None = None

    @property
    def refresh_seconds(self) -> int:
        if self._refresh_seconds is not None:
            return self._refresh_seconds
        return get_settings().catalog_refresh_seconds

    async def load(self, session: AsyncSession) -> Catalog:
        row = await CatalogVersionsRepo.get_active(session)
        if row is None:
            return build_default_catalog(get_settings().payment_currency)
        return catalog_from_payload(row.payload, version=row.version)

    async def get(self, session: AsyncSession) -> Catalog:
        now = time.monotonic()
        if (
            self._cached is not None
            and self._loaded_at is not None
            and now - self._loaded_at < self.refresh_seconds
        ):
            return self._cached

        catalog = await self.load(session)
        if self._cached is None or self._cached.version != catalog.version:
            logger.info("catalog_loaded", version=catalog.version)
        self._cached = catalog
        self._loaded_at = now
        return catalog

    def invalidate(self) -> None:
        self._cached = None
        self._loaded_at = None


catalog_store = CatalogStore()


async def publish_catalog_version(
    session: AsyncSession,
    *,
    payload: dict[str, object],
    published_by_user_id: int | None,
    now_utc: datetime,
) -> Catalog:
    next_version = await CatalogVersionsRepo.get_max_version(session) + 1
    catalog = catalog_from_payload(payload, version=next_version)
    await CatalogVersionsRepo.publish(
        session,
        version=next_version,
        payload=catalog_to_payload(catalog),
        published_by_user_id=published_by_user_id,
        now_utc=now_utc,
    )
    catalog_store.invalidate()
    logger.info(
        "catalog_version_published",
        version=next_version,
        published_by_user_id=published_by_user_id,
    )
    return catalog
