from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.session import SessionLocal
from app.economy.payments.providers.base import PaymentProvider
from app.economy.payments.service import PaymentService
from app.economy.payments.types import PendingCheckout, PurchaseInitResult


async def open_checkout(
    pending: PendingCheckout,
    *,
    provider: PaymentProvider,
    now_utc: datetime,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> PurchaseInitResult:
    """Create the provider checkout, then record the pending payment.

    No transaction is open while the provider is called. A failed checkout
    leaves no payment row behind.
    """
    factory = session_factory or SessionLocal
    checkout = await provider.create_checkout(pending.checkout_request())
    async with factory.begin() as session:
        return await PaymentService.record_checkout(
            session,
            pending=pending,
            provider_name=provider.name,
            checkout=checkout,
            now_utc=now_utc,
        )


async def initiate_purchase(
    *,
    user_id: int,
    provider: PaymentProvider,
    now_utc: datetime,
    package_id: str | None = None,
    custom_amount: int | None = None,
    payment_method_id: str | None = None,
    source: str = "user",
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> PurchaseInitResult:
    factory = session_factory or SessionLocal
    async with factory() as session:
        pending = await PaymentService.quote_purchase(
            session,
            user_id=user_id,
            package_id=package_id,
            custom_amount=custom_amount,
            payment_method_id=payment_method_id,
            source=source,
        )
    return await open_checkout(pending, provider=provider, now_utc=now_utc, session_factory=factory)


async def initiate_subscription(
    *,
    user_id: int,
    tier_id: str,
    provider: PaymentProvider,
    now_utc: datetime,
    payment_method_id: str | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> PurchaseInitResult:
    factory = session_factory or SessionLocal
    async with factory() as session:
        pending = await PaymentService.quote_subscription(
            session,
            user_id=user_id,
            tier_id=tier_id,
            payment_method_id=payment_method_id,
        )
    return await open_checkout(pending, provider=provider, now_utc=now_utc, session_factory=factory)
