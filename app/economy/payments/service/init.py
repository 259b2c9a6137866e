from __future__ import annotations

from datetime import datetime
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.payments import Payment
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.catalog.errors import UnknownTierError
from app.economy.catalog.pricing import get_package, get_tier, price_for_custom_amount
from app.economy.catalog.store import catalog_store
from app.economy.ledger.errors import UserNotFoundError
from app.economy.payments.errors import PurchaseRequestValidationError
from app.economy.payments.providers.base import Checkout
from app.economy.payments.types import PendingCheckout, PurchaseInitResult

from .constants import PAYMENT_SOURCES

logger = structlog.get_logger(__name__)


async def quote_purchase(
    session: AsyncSession,
    *,
    user_id: int,
    package_id: str | None = None,
    custom_amount: int | None = None,
    payment_method_id: str | None = None,
    source: str = "user",
) -> PendingCheckout:
    if (package_id is None) == (custom_amount is None):
        raise PurchaseRequestValidationError("exactly one of package_id or custom_amount is required")
    if source not in PAYMENT_SOURCES:
        raise PurchaseRequestValidationError(f"unsupported payment source {source}")

    user = await UsersRepo.get_by_id(session, user_id)
    if user is None:
        raise UserNotFoundError

    catalog = await catalog_store.get(session)
    if package_id is not None:
        package = get_package(catalog, package_id)
        tokens_amount = package.base_tokens
        bonus_tokens = package.bonus_tokens
        amount = package.price
        description = f"{package.name} ({package.total_tokens} tokens)"
    else:
        quote = price_for_custom_amount(catalog, int(custom_amount))
        tokens_amount = quote.amount
        bonus_tokens = quote.bonus_tokens
        amount = quote.price
        description = f"Custom token purchase ({quote.total_tokens} tokens)"

    return PendingCheckout(
        payment_id=uuid4(),
        user_id=user_id,
        payment_type="credit_purchase",
        amount=amount,
        currency=catalog.currency,
        tokens_amount=tokens_amount,
        bonus_tokens=bonus_tokens,
        description=description,
        source=source,
        payment_method_id=payment_method_id,
        package_id=package_id,
    )


async def quote_subscription(
    session: AsyncSession,
    *,
    user_id: int,
    tier_id: str,
    payment_method_id: str | None = None,
) -> PendingCheckout:
    user = await UsersRepo.get_by_id(session, user_id)
    if user is None:
        raise UserNotFoundError

    catalog = await catalog_store.get(session)
    tier = get_tier(catalog, tier_id)
    if not tier.is_paid:
        raise UnknownTierError(tier_id)

    return PendingCheckout(
        payment_id=uuid4(),
        user_id=user_id,
        payment_type="subscription",
        amount=tier.price,
        currency=catalog.currency,
        tokens_amount=0,
        bonus_tokens=tier.bonus_tokens,
        description=f"{tier.name} subscription ({tier.duration_days} days)",
        source="user",
        payment_method_id=payment_method_id,
        tier_id=tier.tier_id,
    )


async def record_checkout(
    session: AsyncSession,
    *,
    pending: PendingCheckout,
    provider_name: str,
    checkout: Checkout,
    now_utc: datetime,
) -> PurchaseInitResult:
    payment = await PaymentsRepo.create(
        session,
        payment=Payment(
            id=pending.payment_id,
            user_id=pending.user_id,
            amount=pending.amount,
            currency=pending.currency,
            type=pending.payment_type,
            status="pending",
            source=pending.source,
            provider=provider_name,
            external_payment_id=checkout.external_payment_id,
            package_id=pending.package_id,
            tier_id=pending.tier_id,
            payment_method_id=pending.payment_method_id,
            tokens_amount=pending.tokens_amount,
            bonus_tokens=pending.bonus_tokens,
            checkout_url=checkout.checkout_url,
            raw_provider_payload=checkout.raw,
            created_at=now_utc,
            updated_at=now_utc,
        ),
    )
    logger.info(
        "payment_initiated",
        payment_id=str(payment.id),
        user_id=pending.user_id,
        payment_type=pending.payment_type,
        source=pending.source,
        provider=provider_name,
        amount=str(pending.amount),
        currency=pending.currency,
    )
    return PurchaseInitResult(
        payment_id=payment.id,
        external_payment_id=checkout.external_payment_id,
        checkout_url=checkout.checkout_url,
        amount=pending.amount,
        currency=pending.currency,
        tokens_total=pending.tokens_amount + pending.bonus_tokens,
        payment_type=pending.payment_type,
    )
