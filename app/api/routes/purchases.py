from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from app.db.session import SessionLocal
from app.economy.payments.providers import get_payment_provider
from app.economy.payments.service import PaymentService
from app.economy.payments.types import PurchaseInitResult
from app.services.payment_checkout import initiate_purchase
from app.services.payment_sync import sync_payment_with_provider

from .access import assert_internal_access
from .errors import DOMAIN_ERRORS, raise_http_error

router = APIRouter(tags=["payments"])
logger = structlog.get_logger(__name__)


class PurchaseRequest(BaseModel):
    user_id: int = Field(gt=0)
    package_id: str | None = Field(default=None, min_length=1, max_length=32)
    custom_amount: int | None = None
    payment_method_id: str | None = Field(default=None, max_length=128)
    provider: str | None = Field(default=None, max_length=32)


class CheckoutResponse(BaseModel):
    payment_id: UUID
    external_payment_id: str
    checkout_url: str | None = None
    amount: Decimal
    currency: str
    tokens_total: int
    payment_type: str


class PaymentResponse(BaseModel):
    payment_id: UUID
    user_id: int
    type: str
    status: str
    amount: Decimal
    currency: str
    tokens_amount: int
    bonus_tokens: int
    external_payment_id: str | None = None
    completed_at: datetime | None = None


class ReconcileResponse(BaseModel):
    payment_id: UUID
    status: str
    credited: bool
    idempotent_replay: bool


def as_checkout_response(result: PurchaseInitResult) -> CheckoutResponse:
    return CheckoutResponse(
        payment_id=result.payment_id,
        external_payment_id=result.external_payment_id,
        checkout_url=result.checkout_url,
        amount=result.amount,
        currency=result.currency,
        tokens_total=result.tokens_total,
        payment_type=result.payment_type,
    )


@router.post("/purchases", response_model=CheckoutResponse, status_code=201)
async def create_purchase(payload: PurchaseRequest, request: Request) -> CheckoutResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        provider = get_payment_provider(payload.provider)
        result = await initiate_purchase(
            user_id=payload.user_id,
            package_id=payload.package_id,
            custom_amount=payload.custom_amount,
            payment_method_id=payload.payment_method_id,
            provider=provider,
            source="user",
            now_utc=now_utc,
        )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return as_checkout_response(result)


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: UUID, request: Request) -> PaymentResponse:
    assert_internal_access(request)
    try:
        async with SessionLocal() as session:
            payment = await PaymentService.get_payment(session, payment_id=payment_id)
            response = PaymentResponse(
                payment_id=payment.id,
                user_id=payment.user_id,
                type=payment.type,
                status=payment.status,
                amount=payment.amount,
                currency=payment.currency,
                tokens_amount=payment.tokens_amount,
                bonus_tokens=payment.bonus_tokens,
                external_payment_id=payment.external_payment_id,
                completed_at=payment.completed_at,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return response


@router.post("/payments/{payment_id}/complete", response_model=ReconcileResponse)
async def complete_payment(payment_id: UUID, request: Request) -> ReconcileResponse:
    assert_internal_access(request)
    try:
        result = await sync_payment_with_provider(payment_id, source="manual")
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return ReconcileResponse(
        payment_id=result.payment_id,
        status=result.status,
        credited=result.credited,
        idempotent_replay=result.idempotent_replay,
    )
