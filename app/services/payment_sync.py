from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.repo.payments_repo import PaymentsRepo
from app.db.session import SessionLocal
from app.economy.payments.errors import PaymentNotFoundError
from app.economy.payments.providers import get_payment_provider
from app.economy.payments.providers.base import PaymentProvider
from app.economy.payments.service import PaymentService
from app.economy.payments.types import ReconcileResult

logger = structlog.get_logger(__name__)


async def sync_payment_with_provider(
    payment_id: UUID,
    *,
    source: str = "poll",
    provider: PaymentProvider | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> ReconcileResult:
    """Pull the provider's view of a payment and fold it into the ledger.

    The provider call happens between two short transactions so no row lock
    is held across network I/O.
    """
    factory = session_factory or SessionLocal
    async with factory() as session:
        payment = await PaymentsRepo.get_by_id(session, payment_id)
        if payment is None or payment.external_payment_id is None:
            raise PaymentNotFoundError
        external_payment_id = payment.external_payment_id
        provider_name = payment.provider

    active_provider = provider or get_payment_provider(provider_name)
    provider_status = await active_provider.fetch_status(external_payment_id)

    async with factory.begin() as session:
        result = await PaymentService.reconcile(
            session,
            external_payment_id=external_payment_id,
            new_status=provider_status.status,
            amount=provider_status.amount,
            currency=provider_status.currency,
            source=source,
            raw_payload=provider_status.raw,
            now_utc=datetime.now(timezone.utc),
        )

    logger.info(
        "payment_synced_with_provider",
        payment_id=str(payment_id),
        provider=active_provider.name,
        provider_status=provider_status.status,
        status=result.status,
        credited=result.credited,
    )
    return result
