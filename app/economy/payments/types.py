from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from app.economy.payments.providers.base import CheckoutRequest


@dataclass(slots=True)
class PurchaseInitResult:
    payment_id: UUID
    external_payment_id: str
    checkout_url: str | None
    amount: Decimal
    currency: str
    tokens_total: int
    payment_type: str = "credit_purchase"


@dataclass(slots=True)
class ReconcileResult:
    payment_id: UUID
    status: str
    credited: bool
    idempotent_replay: bool


@dataclass(slots=True)
class PendingCheckout:
    """A priced payment that has not been sent to the provider yet."""

    payment_id: UUID
    user_id: int
    payment_type: str
    amount: Decimal
    currency: str
    tokens_amount: int
    bonus_tokens: int
    description: str
    source: str
    payment_method_id: str | None = None
    package_id: str | None = None
    tier_id: str | None = None

    def checkout_request(self) -> CheckoutRequest:
        return CheckoutRequest(
            payment_id=self.payment_id,
            user_id=self.user_id,
            amount=self.amount,
            currency=self.currency,
            payment_type=self.payment_type,
            description=self.description,
            payment_method_id=self.payment_method_id,
        )
