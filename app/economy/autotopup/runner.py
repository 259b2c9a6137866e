from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.db.repo.auto_topup_repo import AutoTopupRepo
from app.db.session import SessionLocal
from app.economy.autotopup.service import AutoTopupService
from app.economy.autotopup.types import (
    OUTCOME_ABOVE_THRESHOLD,
    OUTCOME_COOLDOWN,
    OUTCOME_IN_FLIGHT,
    OUTCOME_INITIATED,
    OUTCOME_INVALID_PACKAGE,
    OUTCOME_SKIPPED,
)
from app.economy.payments.providers import get_payment_provider
from app.economy.payments.providers.base import PaymentProvider
from app.services.payment_checkout import open_checkout

logger = structlog.get_logger(__name__)

SUMMARY_KEYS = (
    "examined",
    OUTCOME_INITIATED,
    OUTCOME_ABOVE_THRESHOLD,
    OUTCOME_IN_FLIGHT,
    OUTCOME_COOLDOWN,
    OUTCOME_INVALID_PACKAGE,
    OUTCOME_SKIPPED,
    "errors",
)


async def _process_user(
    factory: async_sessionmaker[AsyncSession],
    *,
    user_id: int,
    provider: PaymentProvider,
    cooldown: timedelta,
    now_utc: datetime,
) -> str:
    async with factory.begin() as session:
        claim = await AutoTopupService.claim_topup(
            session,
            user_id=user_id,
            cooldown=cooldown,
            now_utc=now_utc,
        )
    if claim.pending is None:
        return claim.outcome

    try:
        result = await open_checkout(
            claim.pending,
            provider=provider,
            now_utc=now_utc,
            session_factory=factory,
        )
    except Exception:
        async with factory.begin() as session:
            await AutoTopupService.release_claim(
                session,
                user_id=user_id,
                previous_topup_at=claim.previous_topup_at,
                now_utc=now_utc,
            )
        raise

    logger.info("auto_topup_initiated", user_id=user_id, payment_id=str(result.payment_id))
    return claim.outcome


async def run_auto_topups(
    now_utc: datetime,
    *,
    provider: PaymentProvider | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    batch_size: int | None = None,
) -> dict[str, int]:
    settings = get_settings()
    factory = session_factory or SessionLocal
    active_provider = provider or get_payment_provider()
    cooldown = timedelta(minutes=settings.auto_topup_cooldown_minutes)
    limit = batch_size or settings.auto_topup_batch_size

    summary = {key: 0 for key in SUMMARY_KEYS}
    after_id: int | None = None
    while True:
        async with factory() as session:
            batch = await AutoTopupRepo.list_enabled_user_ids(session, after_id=after_id, limit=limit)
        if not batch:
            break

        for row_id, user_id in batch:
            after_id = row_id
            summary["examined"] += 1
            try:
                outcome = await _process_user(
                    factory,
                    user_id=user_id,
                    provider=active_provider,
                    cooldown=cooldown,
                    now_utc=now_utc,
                )
            except Exception:
                summary["errors"] += 1
                logger.exception("auto_topup_user_failed", user_id=user_id)
                continue
            summary[outcome] += 1

        if len(batch) < limit:
            break

    logger.info("auto_topup_run_finished", **summary)
    return summary
