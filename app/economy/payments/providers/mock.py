from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from app.economy.payments.errors import PaymentProviderError
from app.economy.payments.providers.base import (
    Checkout,
    CheckoutRequest,
    ProviderStatus,
    WebhookEvent,
)
from app.economy.payments.providers.charge_events import parse_charge_event
from app.economy.payments.signature import verify_signature


@dataclass(slots=True)
class MockCharge:
    status: str
    amount: Decimal
    currency: str


class MockPaymentProvider:
    """In-memory provider for local development and tests."""

    name = "mock"

    def __init__(self, *, webhook_secret: str = "", checkout_base_url: str = "http://localhost") -> None:
        self._webhook_secret = webhook_secret
        self._checkout_base_url = checkout_base_url.rstrip("/")
        self.charges: dict[str, MockCharge] = {}

    async def create_checkout(self, request: CheckoutRequest) -> Checkout:
        external_payment_id = f"mock_{request.payment_id.hex}"
        self.charges[external_payment_id] = MockCharge(
            status="pending",
            amount=request.amount,
            currency=request.currency,
        )
        return Checkout(
            external_payment_id=external_payment_id,
            checkout_url=f"{self._checkout_base_url}/mock-checkout/{external_payment_id}",
            raw={"code": external_payment_id},
        )

    async def fetch_status(self, external_payment_id: str) -> ProviderStatus:
        charge = self.charges.get(external_payment_id)
        if charge is None:
            raise PaymentProviderError(f"unknown mock charge {external_payment_id}")
        return ProviderStatus(
            external_payment_id=external_payment_id,
            status=charge.status,
            amount=charge.amount,
            currency=charge.currency,
            raw={"code": external_payment_id, "status": charge.status},
        )

    def set_status(self, external_payment_id: str, status: str) -> None:
        charge = self.charges.get(external_payment_id)
        if charge is None:
            raise PaymentProviderError(f"unknown mock charge {external_payment_id}")
        charge.status = status

    def verify_signature(self, raw_body: bytes, signature: str | None) -> bool:
        if not self._webhook_secret:
            return True
        return verify_signature(self._webhook_secret, raw_body, signature)

    def parse_event(self, payload: dict[str, object]) -> WebhookEvent | None:
        return parse_charge_event(payload)
