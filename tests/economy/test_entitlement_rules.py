from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.economy.catalog.defaults import build_default_catalog
from app.economy.entitlements.rules import can_create_chat, resolve_entitlement

UTC = timezone.utc
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def test_free_user_gets_single_chat_and_no_discount() -> None:
    entitlement = resolve_entitlement(
        build_default_catalog(),
        subscription_status="free",
        subscription_expiry=None,
        now_utc=NOW,
    )

    assert entitlement.tier == "free"
    assert entitlement.chat_limit == 1
    assert entitlement.discount_multiplier == Decimal("1.0")
    assert entitlement.exclusive_persona_access is False
    assert entitlement.expires_at is None


def test_active_premium_grants_discount_and_exclusive_access() -> None:
    expiry = NOW + timedelta(days=10)
    entitlement = resolve_entitlement(
        build_default_catalog(),
        subscription_status="premium",
        subscription_expiry=expiry,
        now_utc=NOW,
    )

    assert entitlement.tier == "premium"
    assert entitlement.chat_limit == 20
    assert entitlement.discount_multiplier == Decimal("0.5")
    assert entitlement.exclusive_persona_access is True
    assert entitlement.expires_at == expiry
    assert entitlement.is_downgraded is False


def test_subscription_is_downgraded_at_exact_expiry() -> None:
    entitlement = resolve_entitlement(
        build_default_catalog(),
        subscription_status="vip",
        subscription_expiry=NOW,
        now_utc=NOW,
    )

    assert entitlement.tier == "free"
    assert entitlement.chat_limit == 1
    assert entitlement.is_downgraded is True


def test_naive_expiry_is_read_as_utc() -> None:
    naive_expiry = (NOW + timedelta(hours=1)).replace(tzinfo=None)
    entitlement = resolve_entitlement(
        build_default_catalog(),
        subscription_status="basic",
        subscription_expiry=naive_expiry,
        now_utc=NOW,
    )

    assert entitlement.tier == "basic"
    assert entitlement.expires_at == NOW + timedelta(hours=1)


def test_can_create_chat_respects_limit() -> None:
    assert can_create_chat(current_count=0, limit=1) is True
    assert can_create_chat(current_count=1, limit=1) is False
    assert can_create_chat(current_count=500, limit=None) is True
