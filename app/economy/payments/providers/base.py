from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    payment_id: UUID
    user_id: int
    amount: Decimal
    currency: str
    payment_type: str
    description: str
    payment_method_id: str | None = None


@dataclass(frozen=True, slots=True)
class Checkout:
    external_payment_id: str
    checkout_url: str | None
    raw: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ProviderStatus:
    external_payment_id: str
    status: str
    amount: Decimal | None
    currency: str | None
    raw: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class WebhookEvent:
    event_type: str
    external_payment_id: str
    status: str
    amount: Decimal | None
    currency: str | None
    raw: dict[str, object] = field(default_factory=dict)


class PaymentProvider(Protocol):
    name: str

    async def create_checkout(self, request: CheckoutRequest) -> Checkout: ...

    async def fetch_status(self, external_payment_id: str) -> ProviderStatus: ...

    def verify_signature(self, raw_body: bytes, signature: str | None) -> bool: ...

    def parse_event(self, payload: dict[str, object]) -> WebhookEvent | None: ...
