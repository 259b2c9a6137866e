from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc
from app.db.repo.auto_topup_repo import AutoTopupRepo
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.autotopup.errors import AutoTopupValidationError
from app.economy.autotopup.types import (
    OUTCOME_ABOVE_THRESHOLD,
    OUTCOME_COOLDOWN,
    OUTCOME_IN_FLIGHT,
    OUTCOME_INITIATED,
    OUTCOME_INVALID_PACKAGE,
    OUTCOME_SKIPPED,
    AutoTopupClaim,
    AutoTopupSettingsView,
)
from app.economy.catalog.errors import UnknownPackageError
from app.economy.catalog.pricing import get_package
from app.economy.catalog.store import catalog_store
from app.economy.ledger.errors import UserNotFoundError
from app.economy.ledger.service import LedgerService
from app.economy.payments.service.init import quote_purchase

logger = structlog.get_logger(__name__)


class AutoTopupService:
    @staticmethod
    async def get_settings(session: AsyncSession, *, user_id: int) -> AutoTopupSettingsView:
        user = await UsersRepo.get_by_id(session, user_id)
        if user is None:
            raise UserNotFoundError
        settings = await AutoTopupRepo.get_by_user_id(session, user_id)
        if settings is None:
            return AutoTopupSettingsView(
                user_id=user_id,
                enabled=False,
                threshold_amount=Decimal("0"),
                package_id=None,
                payment_method_id=None,
                last_topup_at=None,
            )
        return AutoTopupSettingsView(
            user_id=user_id,
            enabled=settings.enabled,
            threshold_amount=Decimal(str(settings.threshold_amount)),
            package_id=settings.package_id,
            payment_method_id=settings.payment_method_id,
            last_topup_at=as_utc(settings.last_topup_at),
        )

    @staticmethod
    async def update_settings(
        session: AsyncSession,
        *,
        user_id: int,
        enabled: bool,
        threshold_amount: Decimal,
        package_id: str,
        payment_method_id: str | None,
        now_utc: datetime,
    ) -> AutoTopupSettingsView:
        user = await UsersRepo.get_by_id(session, user_id)
        if user is None:
            raise UserNotFoundError
        if threshold_amount < 0:
            raise AutoTopupValidationError("threshold_amount must not be negative")
        if enabled and not payment_method_id:
            raise AutoTopupValidationError("payment_method_id is required to enable auto-topup")

        catalog = await catalog_store.get(session)
        get_package(catalog, package_id)

        await AutoTopupRepo.upsert(
            session,
            user_id=user_id,
            enabled=enabled,
            threshold_amount=threshold_amount,
            package_id=package_id,
            payment_method_id=payment_method_id,
            now_utc=now_utc,
        )
        logger.info(
            "auto_topup_settings_updated",
            user_id=user_id,
            enabled=enabled,
            package_id=package_id,
        )
        return await AutoTopupService.get_settings(session, user_id=user_id)

    @staticmethod
    async def claim_topup(
        session: AsyncSession,
        *,
        user_id: int,
        cooldown: timedelta,
        now_utc: datetime,
    ) -> AutoTopupClaim:
        """Decide under the settings row lock whether to top up, and claim the slot.

        Stamping ``last_topup_at`` before the provider is called keeps a
        concurrent scan inside the cooldown while the checkout is opened.
        """
        settings = await AutoTopupRepo.get_by_user_id_for_update(session, user_id)
        if settings is None or not settings.enabled or not settings.payment_method_id:
            return AutoTopupClaim(outcome=OUTCOME_SKIPPED)

        balance = await LedgerService.get_balance(session, user_id=user_id)
        if balance >= Decimal(str(settings.threshold_amount)):
            return AutoTopupClaim(outcome=OUTCOME_ABOVE_THRESHOLD)

        if await PaymentsRepo.has_open_payment(
            session,
            user_id=user_id,
            payment_type="credit_purchase",
            source="auto_topup",
        ):
            return AutoTopupClaim(outcome=OUTCOME_IN_FLIGHT)

        last_topup_at = as_utc(settings.last_topup_at)
        if last_topup_at is not None and last_topup_at + cooldown > now_utc:
            return AutoTopupClaim(outcome=OUTCOME_COOLDOWN)

        try:
            pending = await quote_purchase(
                session,
                user_id=user_id,
                package_id=settings.package_id,
                payment_method_id=settings.payment_method_id,
                source="auto_topup",
            )
        except UnknownPackageError:
            logger.warning(
                "auto_topup_invalid_package",
                user_id=user_id,
                package_id=settings.package_id,
            )
            return AutoTopupClaim(outcome=OUTCOME_INVALID_PACKAGE)

        await AutoTopupRepo.mark_topped_up(session, user_id=user_id, now_utc=now_utc)
        logger.info(
            "auto_topup_claimed",
            user_id=user_id,
            package_id=settings.package_id,
            balance=str(balance),
            threshold_amount=str(settings.threshold_amount),
        )
        return AutoTopupClaim(
            outcome=OUTCOME_INITIATED,
            pending=pending,
            previous_topup_at=last_topup_at,
        )

    @staticmethod
    async def release_claim(
        session: AsyncSession,
        *,
        user_id: int,
        previous_topup_at: datetime | None,
        now_utc: datetime,
    ) -> None:
        await AutoTopupRepo.restore_last_topup(
            session,
            user_id=user_id,
            last_topup_at=previous_topup_at,
            now_utc=now_utc,
        )
        logger.info("auto_topup_claim_released", user_id=user_id)
