from __future__ import annotations

import pytest

from app.api.routes.payment_webhook import _verify_signature
from app.economy.payments.errors import InvalidWebhookSignatureError
from app.economy.payments.providers.mock import MockPaymentProvider
from app.economy.payments.signature import compute_signature, verify_signature

BODY = b'{"event":{"type":"charge:confirmed"}}'


def test_verify_signature_accepts_matching_hmac() -> None:
    signature = compute_signature("whsec", BODY)
    assert verify_signature("whsec", BODY, signature) is True
    assert verify_signature("whsec", BODY, f"  {signature.upper()} ") is True


def test_verify_signature_rejects_tampered_body_or_wrong_secret() -> None:
    signature = compute_signature("whsec", BODY)
    assert verify_signature("whsec", BODY + b" ", signature) is False
    assert verify_signature("other", BODY, signature) is False


def test_verify_signature_requires_secret_and_header() -> None:
    assert verify_signature("", BODY, compute_signature("", BODY)) is False
    assert verify_signature("whsec", BODY, None) is False


def test_webhook_signature_check_raises_domain_error() -> None:
    provider = MockPaymentProvider(webhook_secret="whsec")

    _verify_signature(provider, BODY, compute_signature("whsec", BODY))
    with pytest.raises(InvalidWebhookSignatureError):
        _verify_signature(provider, BODY, compute_signature("other", BODY))
