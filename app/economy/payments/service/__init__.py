from __future__ import annotations

from .activation import _activate_subscription
from .constants import PURCHASE_CREDIT_KEY, SUBSCRIPTION_BONUS_KEY
from .init import quote_purchase, quote_subscription, record_checkout
from .queries import get_payment
from .reconcile import _apply_completion, _check_reported_amount, reconcile
from .subscriptions import cancel_subscription, expire_subscriptions, list_subscription_history


class PaymentService:
    _activate_subscription = staticmethod(_activate_subscription)
    _apply_completion = staticmethod(_apply_completion)
    _check_reported_amount = staticmethod(_check_reported_amount)
    quote_purchase = staticmethod(quote_purchase)
    quote_subscription = staticmethod(quote_subscription)
    record_checkout = staticmethod(record_checkout)
    reconcile = staticmethod(reconcile)
    get_payment = staticmethod(get_payment)
    cancel_subscription = staticmethod(cancel_subscription)
    list_subscription_history = staticmethod(list_subscription_history)
    expire_subscriptions = staticmethod(expire_subscriptions)


__all__ = [
    "PURCHASE_CREDIT_KEY",
    "SUBSCRIPTION_BONUS_KEY",
    "PaymentService",
]
