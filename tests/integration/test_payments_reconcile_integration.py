from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.db.models.ledger_entries import LedgerEntry
from app.db.models.payments import Payment
from app.db.models.subscriptions import Subscription
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.economy.catalog.errors import UnknownTierError
from app.economy.ledger.service import LedgerService
from app.economy.payments.errors import (
    PaymentAmountMismatchError,
    PaymentProviderError,
    PurchaseRequestValidationError,
)
from app.economy.payments.providers.base import Checkout, CheckoutRequest
from app.economy.payments.providers.mock import MockPaymentProvider
from app.economy.payments.service import PaymentService
from app.services.payment_checkout import initiate_purchase, initiate_subscription
from app.services.payment_sync import sync_payment_with_provider
from tests.integration.ledger_fixtures import UTC, _create_user


async def _start_purchase(
    provider: MockPaymentProvider,
    user_id: int,
    **kwargs: object,
):
    return await initiate_purchase(
        user_id=user_id,
        provider=provider,
        now_utc=datetime.now(UTC),
        **kwargs,
    )


async def _reconcile(external_payment_id: str, status: str, **kwargs: object):
    async with SessionLocal.begin() as session:
        return await PaymentService.reconcile(
            session,
            external_payment_id=external_payment_id,
            new_status=status,
            source="webhook",
            now_utc=datetime.now(UTC),
            **kwargs,
        )


async def _balance(user_id: int) -> Decimal:
    async with SessionLocal() as session:
        return await LedgerService.get_balance(session, user_id=user_id)


@pytest.mark.asyncio
async def test_webhook_and_poll_credit_a_purchase_once() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()
    purchase = await _start_purchase(provider, user_id, custom_amount=10)
    assert purchase.amount == Decimal("0.50")
    assert purchase.tokens_total == 10

    webhook_result = await _reconcile(
        purchase.external_payment_id,
        "completed",
        amount=Decimal("0.50"),
        currency="USD",
    )
    provider.set_status(purchase.external_payment_id, "completed")
    poll_result = await sync_payment_with_provider(purchase.payment_id, provider=provider)

    assert webhook_result.credited is True
    assert poll_result.credited is False
    assert poll_result.idempotent_replay is True
    assert await _balance(user_id) == Decimal("10.00")

    async with SessionLocal() as session:
        credits = await session.scalar(
            select(func.count(LedgerEntry.id)).where(LedgerEntry.payment_id == purchase.payment_id)
        )
    assert credits == 1


@pytest.mark.asyncio
async def test_package_purchase_credits_base_and_bonus_tokens() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()
    purchase = await _start_purchase(provider, user_id, package_id="standard")

    await _reconcile(purchase.external_payment_id, "processing")
    result = await _reconcile(purchase.external_payment_id, "completed")

    assert result.status == "completed"
    assert await _balance(user_id) == Decimal("330.00")


@pytest.mark.asyncio
async def test_short_payment_is_not_credited() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()
    purchase = await _start_purchase(provider, user_id, package_id="basic")

    with pytest.raises(PaymentAmountMismatchError):
        await _reconcile(
            purchase.external_payment_id,
            "completed",
            amount=Decimal("1.00"),
            currency="USD",
        )

    async with SessionLocal() as session:
        payment = await session.get(Payment, purchase.payment_id)
    assert payment.status == "pending"
    assert await _balance(user_id) == Decimal("0.00")


@pytest.mark.asyncio
async def test_failed_payment_can_still_complete_later() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()
    purchase = await _start_purchase(provider, user_id, package_id="basic")

    failed = await _reconcile(purchase.external_payment_id, "failed")
    late_pending = await _reconcile(purchase.external_payment_id, "pending")
    completed = await _reconcile(purchase.external_payment_id, "completed")

    assert failed.status == "failed"
    assert late_pending.idempotent_replay is True
    assert late_pending.status == "failed"
    assert completed.credited is True
    assert await _balance(user_id) == Decimal("100.00")


@pytest.mark.asyncio
async def test_purchase_requires_exactly_one_of_package_or_amount() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()

    with pytest.raises(PurchaseRequestValidationError):
        await _start_purchase(provider, user_id)
    with pytest.raises(PurchaseRequestValidationError):
        await _start_purchase(provider, user_id, package_id="basic", custom_amount=50)


@pytest.mark.asyncio
async def test_subscription_activation_sets_tier_and_grants_bonus() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()

    checkout = await initiate_subscription(
        user_id=user_id,
        tier_id="premium",
        provider=provider,
        now_utc=datetime.now(UTC),
    )
    assert checkout.amount == Decimal("19.99")

    result = await _reconcile(checkout.external_payment_id, "completed", amount=Decimal("19.99"))

    assert result.credited is True
    assert await _balance(user_id) == Decimal("1000.00")
    async with SessionLocal() as session:
        user = await UsersRepo.get_by_id(session, user_id)
        subscriptions = (
            await session.execute(select(Subscription).where(Subscription.user_id == user_id))
        ).scalars().all()
    assert user.subscription_status == "premium"
    assert len(subscriptions) == 1
    assert subscriptions[0].status == "active"
    assert subscriptions[0].bonus_tokens_granted == 1000


@pytest.mark.asyncio
async def test_same_tier_renewal_extends_from_current_end() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()

    end_dates = []
    for _ in range(2):
        checkout = await initiate_subscription(
            user_id=user_id,
            tier_id="basic",
            provider=provider,
            now_utc=datetime.now(UTC),
        )
        await _reconcile(checkout.external_payment_id, "completed")
        async with SessionLocal() as session:
            user = await UsersRepo.get_by_id(session, user_id)
            end_dates.append(user.subscription_expiry.replace(tzinfo=None))

    assert end_dates[1] - end_dates[0] >= timedelta(days=29, hours=23)
    assert await _balance(user_id) == Decimal("600.00")


@pytest.mark.asyncio
async def test_free_tier_cannot_be_purchased() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()

    with pytest.raises(UnknownTierError):
        await initiate_subscription(
            user_id=user_id,
            tier_id="free",
            provider=provider,
            now_utc=datetime.now(UTC),
        )


@pytest.mark.asyncio
async def test_cancelled_subscription_keeps_access_until_period_end() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()
    checkout = await initiate_subscription(
        user_id=user_id,
        tier_id="vip",
        provider=provider,
        now_utc=datetime.now(UTC),
    )
    await _reconcile(checkout.external_payment_id, "completed")

    async with SessionLocal() as session:
        history = await PaymentService.list_subscription_history(session, user_id=user_id)
    subscription_id = history[0].id

    async with SessionLocal.begin() as session:
        cancelled = await PaymentService.cancel_subscription(
            session,
            user_id=user_id,
            subscription_id=subscription_id,
            now_utc=datetime.now(UTC),
        )
        assert cancelled.status == "cancelled"
        assert cancelled.auto_renew is False

    async with SessionLocal() as session:
        user = await UsersRepo.get_by_id(session, user_id)
    assert user.subscription_status == "vip"


@pytest.mark.asyncio
async def test_concurrent_webhook_and_poll_credit_once() -> None:
    provider = MockPaymentProvider()
    user_id = await _create_user()
    purchase = await _start_purchase(provider, user_id, package_id="basic")
    provider.set_status(purchase.external_payment_id, "completed")

    webhook_result, poll_result = await asyncio.gather(
        _reconcile(purchase.external_payment_id, "completed", amount=Decimal("4.99"), currency="USD"),
        sync_payment_with_provider(purchase.payment_id, provider=provider),
    )

    assert [webhook_result.credited, poll_result.credited].count(True) == 1
    assert await _balance(user_id) == Decimal("100.00")
    async with SessionLocal() as session:
        credits = await session.scalar(
            select(func.count(LedgerEntry.id)).where(LedgerEntry.payment_id == purchase.payment_id)
        )
    assert credits == 1


class _UnavailableProvider(MockPaymentProvider):
    async def create_checkout(self, request: CheckoutRequest) -> Checkout:
        raise PaymentProviderError("checkout unavailable")


@pytest.mark.asyncio
async def test_failed_checkout_leaves_no_pending_payment() -> None:
    user_id = await _create_user()

    with pytest.raises(PaymentProviderError):
        await _start_purchase(_UnavailableProvider(), user_id, package_id="basic")

    async with SessionLocal() as session:
        payments = await session.scalar(
            select(func.count(Payment.id)).where(Payment.user_id == user_id)
        )
    assert payments == 0
