from __future__ import annotations

from collections.abc import Callable
from typing import NoReturn

import structlog
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from app.economy.autotopup.errors import AutoTopupError, AutoTopupValidationError
from app.economy.catalog.errors import (
    AmountAboveMaximumError,
    AmountBelowMinimumError,
    CatalogError,
    CatalogValidationError,
    UnknownPackageError,
    UnknownTierError,
)
from app.economy.ledger.errors import (
    IdempotencyKeyConflictError,
    InsufficientBalanceError,
    InvalidAmountError,
    LedgerError,
    UserNotFoundError,
)
from app.economy.payments.errors import (
    InvalidWebhookSignatureError,
    PaymentAmountMismatchError,
    PaymentError,
    PaymentNotFoundError,
    PaymentProviderError,
    PurchaseRequestValidationError,
    SubscriptionNotFoundError,
    UnknownPaymentProviderError,
)
from app.economy.quota.errors import (
    AlreadyUnlockedError,
    ChatLimitReachedError,
    ChatNotFoundError,
    MessageNotFoundError,
    PersonaAccessDeniedError,
    PersonaNotFoundError,
    QuotaError,
)

logger = structlog.get_logger(__name__)

DOMAIN_ERRORS = (
    AutoTopupError,
    CatalogError,
    LedgerError,
    PaymentError,
    QuotaError,
    SQLAlchemyError,
)


def _no_context(_exc: Exception) -> dict[str, object]:
    return {}


def _insufficient_context(exc: InsufficientBalanceError) -> dict[str, object]:
    return {"balance": str(exc.balance), "required": str(exc.required)}


def _chat_limit_context(exc: ChatLimitReachedError) -> dict[str, object]:
    return {
        "current_count": exc.current_count,
        "limit": exc.limit,
        "tier": exc.tier,
        "next_tier": exc.next_tier,
    }


def _persona_access_context(exc: PersonaAccessDeniedError) -> dict[str, object]:
    return {"tier": exc.tier, "next_tier": exc.next_tier}


def _below_minimum_context(exc: AmountBelowMinimumError) -> dict[str, object]:
    return {"amount": exc.amount, "minimum": exc.minimum}


def _above_maximum_context(exc: AmountAboveMaximumError) -> dict[str, object]:
    return {"amount": exc.amount, "maximum": exc.maximum}


def _mismatch_context(exc: PaymentAmountMismatchError) -> dict[str, object]:
    return {
        "expected_amount": str(exc.expected_amount),
        "expected_currency": exc.expected_currency,
        "reported_amount": None if exc.reported_amount is None else str(exc.reported_amount),
        "reported_currency": exc.reported_currency,
    }


def _message_context(exc: Exception) -> dict[str, object]:
    return {"message": str(exc)}


ERROR_TABLE: tuple[tuple[type[Exception], int, str, Callable], ...] = (
    (UserNotFoundError, 404, "USER_NOT_FOUND", _no_context),
    (InvalidAmountError, 422, "INVALID_AMOUNT", _no_context),
    (InsufficientBalanceError, 402, "INSUFFICIENT_TOKENS", _insufficient_context),
    (IdempotencyKeyConflictError, 409, "IDEMPOTENCY_KEY_CONFLICT", _no_context),
    (UnknownTierError, 404, "UNKNOWN_TIER", _no_context),
    (UnknownPackageError, 404, "UNKNOWN_PACKAGE", _no_context),
    (AmountBelowMinimumError, 422, "AMOUNT_BELOW_MINIMUM", _below_minimum_context),
    (AmountAboveMaximumError, 422, "AMOUNT_ABOVE_MAXIMUM", _above_maximum_context),
    (CatalogValidationError, 422, "INVALID_CATALOG", _message_context),
    (PaymentNotFoundError, 404, "PAYMENT_NOT_FOUND", _no_context),
    (SubscriptionNotFoundError, 404, "SUBSCRIPTION_NOT_FOUND", _no_context),
    (InvalidWebhookSignatureError, 401, "INVALID_SIGNATURE", _no_context),
    (PaymentAmountMismatchError, 409, "PAYMENT_AMOUNT_MISMATCH", _mismatch_context),
    (PurchaseRequestValidationError, 422, "INVALID_PURCHASE_REQUEST", _message_context),
    (UnknownPaymentProviderError, 422, "UNKNOWN_PROVIDER", _no_context),
    (PaymentProviderError, 502, "PROVIDER_UNAVAILABLE", _no_context),
    (ChatLimitReachedError, 403, "CHAT_LIMIT_REACHED", _chat_limit_context),
    (PersonaNotFoundError, 404, "PERSONA_NOT_FOUND", _no_context),
    (PersonaAccessDeniedError, 403, "PERSONA_ACCESS_DENIED", _persona_access_context),
    (ChatNotFoundError, 404, "CHAT_NOT_FOUND", _no_context),
    (MessageNotFoundError, 404, "MESSAGE_NOT_FOUND", _no_context),
    (AlreadyUnlockedError, 409, "ALREADY_UNLOCKED", _no_context),
    (AutoTopupValidationError, 422, "INVALID_AUTO_TOPUP", _message_context),
)


def raise_http_error(exc: Exception) -> NoReturn:
    for error_type, status_code, code, build_context in ERROR_TABLE:
        if isinstance(exc, error_type):
            raise HTTPException(
                status_code=status_code,
                detail={"code": code, **build_context(exc)},
            ) from exc

    logger.exception("request_storage_or_domain_failure", error_type=type(exc).__name__)
    raise HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR"}) from exc
