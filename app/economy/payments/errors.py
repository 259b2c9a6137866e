from __future__ import annotations

from decimal import Decimal


class PaymentError(Exception):
    pass


class PaymentNotFoundError(PaymentError):
    pass


class SubscriptionNotFoundError(PaymentError):
    pass


class InvalidWebhookSignatureError(PaymentError):
    pass


class PurchaseRequestValidationError(PaymentError):
    pass


class UnknownPaymentProviderError(PaymentError):
    pass


class PaymentProviderError(PaymentError):
    pass


class PaymentAmountMismatchError(PaymentError):
    def __init__(
        self,
        *,
        expected_amount: Decimal,
        expected_currency: str,
        reported_amount: Decimal | None,
        reported_currency: str | None,
    ) -> None:
        super().__init__(
            f"reported {reported_amount} {reported_currency} does not match "
            f"quoted {expected_amount} {expected_currency}"
        )
        self.expected_amount = expected_amount
        self.expected_currency = expected_currency
        self.reported_amount = reported_amount
        self.reported_currency = reported_currency
