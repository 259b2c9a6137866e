from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from app.db.models.subscriptions import Subscription
from app.db.session import SessionLocal
from app.economy.entitlements.service import EntitlementService
from app.economy.payments.providers import get_payment_provider
from app.economy.payments.service import PaymentService
from app.services.payment_checkout import initiate_subscription

from .access import assert_internal_access
from .errors import DOMAIN_ERRORS, raise_http_error
from .purchases import CheckoutResponse, as_checkout_response

router = APIRouter(tags=["subscriptions"])


class SubscriptionViewResponse(BaseModel):
    user_id: int
    tier: str
    status: str
    expires_at: datetime | None = None
    chat_limit: int | None = None
    exclusive_persona_access: bool
    discount_multiplier: Decimal
    auto_renew: bool


class SubscribeRequest(BaseModel):
    user_id: int = Field(gt=0)
    tier_id: str = Field(min_length=1, max_length=16)
    payment_method_id: str | None = Field(default=None, max_length=128)
    provider: str | None = Field(default=None, max_length=32)


class CancelSubscriptionRequest(BaseModel):
    user_id: int = Field(gt=0)


class SubscriptionRecordResponse(BaseModel):
    id: UUID
    tier: str
    price: Decimal
    status: str
    start_date: datetime
    end_date: datetime
    auto_renew: bool
    bonus_tokens_granted: int
    discount_multiplier: Decimal


class SubscriptionHistoryResponse(BaseModel):
    user_id: int
    items: list[SubscriptionRecordResponse]


def _as_record(subscription: Subscription) -> SubscriptionRecordResponse:
    return SubscriptionRecordResponse(
        id=subscription.id,
        tier=subscription.tier,
        price=subscription.price,
        status=subscription.status,
        start_date=subscription.start_date,
        end_date=subscription.end_date,
        auto_renew=subscription.auto_renew,
        bonus_tokens_granted=subscription.bonus_tokens_granted,
        discount_multiplier=subscription.discount_multiplier,
    )


@router.get("/users/{user_id}/subscription", response_model=SubscriptionViewResponse)
async def get_subscription(user_id: int, request: Request) -> SubscriptionViewResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal() as session:
            view = await EntitlementService.get_subscription_view(
                session,
                user_id=user_id,
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)

    return SubscriptionViewResponse(
        user_id=user_id,
        tier=view.tier,
        status=view.status,
        expires_at=view.expires_at,
        chat_limit=view.chat_limit,
        exclusive_persona_access=view.exclusive_persona_access,
        discount_multiplier=view.discount_multiplier,
        auto_renew=view.auto_renew,
    )


@router.post("/subscriptions", response_model=CheckoutResponse, status_code=201)
async def subscribe(payload: SubscribeRequest, request: Request) -> CheckoutResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        provider = get_payment_provider(payload.provider)
        result = await initiate_subscription(
            user_id=payload.user_id,
            tier_id=payload.tier_id,
            payment_method_id=payload.payment_method_id,
            provider=provider,
            now_utc=now_utc,
        )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return as_checkout_response(result)


@router.post("/subscriptions/{subscription_id}/cancel", response_model=SubscriptionRecordResponse)
async def cancel_subscription(
    subscription_id: UUID,
    payload: CancelSubscriptionRequest,
    request: Request,
) -> SubscriptionRecordResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            subscription = await PaymentService.cancel_subscription(
                session,
                user_id=payload.user_id,
                subscription_id=subscription_id,
                now_utc=now_utc,
            )
            response = _as_record(subscription)
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return response


@router.get("/users/{user_id}/subscriptions", response_model=SubscriptionHistoryResponse)
async def list_subscriptions(user_id: int, request: Request) -> SubscriptionHistoryResponse:
    assert_internal_access(request)
    try:
        async with SessionLocal() as session:
            subscriptions = await PaymentService.list_subscription_history(session, user_id=user_id)
            items = [_as_record(subscription) for subscription in subscriptions]
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return SubscriptionHistoryResponse(user_id=user_id, items=items)
