from __future__ import annotations

from functools import lru_cache

from app.core.config import get_settings
from app.economy.payments.errors import UnknownPaymentProviderError
from app.economy.payments.providers.base import (
    Checkout,
    CheckoutRequest,
    PaymentProvider,
    ProviderStatus,
    WebhookEvent,
)
from app.economy.payments.providers.charge_api import ChargeApiProvider
from app.economy.payments.providers.mock import MockPaymentProvider

PROVIDER_NAMES = ("charge_api", "mock")


@lru_cache(maxsize=1)
def _mock_provider() -> MockPaymentProvider:
    settings = get_settings()
    return MockPaymentProvider(
        webhook_secret=settings.payment_webhook_secret,
        checkout_base_url=settings.payment_checkout_redirect_url,
    )


def get_payment_provider(name: str | None = None) -> PaymentProvider:
    settings = get_settings()
    provider_name = (name or settings.payment_provider_mode).strip().lower()
    if provider_name == "mock":
        return _mock_provider()
    if provider_name in {"charge_api", "live"}:
        return ChargeApiProvider(
            api_url=settings.payment_provider_api_url,
            api_key=settings.payment_provider_api_key,
            webhook_secret=settings.payment_webhook_secret,
            redirect_url=settings.payment_checkout_redirect_url,
            timeout_seconds=settings.payment_provider_timeout_seconds,
        )
    raise UnknownPaymentProviderError(provider_name)


def reset_payment_providers() -> None:
    _mock_provider.cache_clear()


__all__ = [
    "PROVIDER_NAMES",
    "ChargeApiProvider",
    "Checkout",
    "CheckoutRequest",
    "MockPaymentProvider",
    "PaymentProvider",
    "ProviderStatus",
    "WebhookEvent",
    "get_payment_provider",
    "reset_payment_providers",
]
