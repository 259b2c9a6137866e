from __future__ import annotations

import json
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.payments.errors import (
    InvalidWebhookSignatureError,
    PaymentAmountMismatchError,
    PaymentNotFoundError,
)
from app.economy.payments.providers import get_payment_provider
from app.economy.payments.providers.base import PaymentProvider
from app.economy.payments.service import PaymentService

from .errors import raise_http_error

router = APIRouter(tags=["webhooks"])
logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "X-Payment-Signature"


def _verify_signature(provider: PaymentProvider, raw_body: bytes, signature: str | None) -> None:
    if not provider.verify_signature(raw_body, signature):
        logger.warning("payment_webhook_invalid_signature", provider=provider.name)
        raise InvalidWebhookSignatureError


def _json_response(status_code: int, content: dict[str, object]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


@router.post("/webhooks/payments")
async def payment_webhook(request: Request) -> JSONResponse:
    settings = get_settings()
    provider = get_payment_provider()
    raw_body = await request.body()

    if settings.payment_provider_mode != "mock":
        try:
            _verify_signature(provider, raw_body, request.headers.get(SIGNATURE_HEADER))
        except InvalidWebhookSignatureError as exc:
            raise_http_error(exc)

    try:
        payload = json.loads(raw_body)
    except ValueError:
        logger.warning("payment_webhook_invalid_json")
        return _json_response(status.HTTP_400_BAD_REQUEST, {"detail": {"code": "INVALID_PAYLOAD"}})
    if not isinstance(payload, dict):
        return _json_response(status.HTTP_400_BAD_REQUEST, {"detail": {"code": "INVALID_PAYLOAD"}})

    event = provider.parse_event(payload)
    if event is None:
        return _json_response(status.HTTP_200_OK, {"status": "ignored"})

    try:
        async with SessionLocal.begin() as session:
            result = await PaymentService.reconcile(
                session,
                external_payment_id=event.external_payment_id,
                new_status=event.status,
                amount=event.amount,
                currency=event.currency,
                source="webhook",
                raw_payload=event.raw,
                now_utc=datetime.now(timezone.utc),
            )
    except PaymentNotFoundError:
        logger.warning(
            "payment_webhook_unknown_payment",
            external_payment_id=event.external_payment_id,
            event_type=event.event_type,
        )
        return _json_response(status.HTTP_404_NOT_FOUND, {"detail": {"code": "PAYMENT_NOT_FOUND"}})
    except PaymentAmountMismatchError as exc:
        logger.error(
            "payment_webhook_amount_mismatch",
            external_payment_id=event.external_payment_id,
            expected_amount=str(exc.expected_amount),
            reported_amount=None if exc.reported_amount is None else str(exc.reported_amount),
            reported_currency=exc.reported_currency,
        )
        return _json_response(
            status.HTTP_409_CONFLICT,
            {"detail": {"code": "PAYMENT_AMOUNT_MISMATCH"}},
        )
    except SQLAlchemyError:
        logger.exception(
            "payment_webhook_storage_failed",
            external_payment_id=event.external_payment_id,
        )
        # Never acknowledge (2xx) a payment event that was not applied.
        return _json_response(status.HTTP_503_SERVICE_UNAVAILABLE, {"status": "retry"})

    return _json_response(
        status.HTTP_200_OK,
        {
            "status": "processed",
            "payment_id": str(result.payment_id),
            "payment_status": result.status,
            "credited": result.credited,
            "idempotent_replay": result.idempotent_replay,
        },
    )
