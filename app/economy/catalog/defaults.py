from __future__ import annotations

from decimal import Decimal

from app.economy.catalog.types import Catalog, CustomTokenBand, SubscriptionTier, TokenPackage

DEFAULT_CATALOG_VERSION = 0

DEFAULT_TIERS = (
    SubscriptionTier(
        tier_id="free",
        name="Free",
        price=Decimal("0.00"),
        bonus_tokens=0,
        chat_limit=1,
        discount_multiplier=Decimal("1.0"),
        exclusive_persona_access=False,
    ),
    SubscriptionTier(
        tier_id="basic",
        name="Basic",
        price=Decimal("9.99"),
        bonus_tokens=300,
        chat_limit=5,
        discount_multiplier=Decimal("0.8"),
        exclusive_persona_access=False,
    ),
    SubscriptionTier(
        tier_id="premium",
        name="Premium",
        price=Decimal("19.99"),
        bonus_tokens=1000,
        chat_limit=20,
        discount_multiplier=Decimal("0.5"),
        exclusive_persona_access=True,
    ),
    SubscriptionTier(
        tier_id="vip",
        name="VIP",
        price=Decimal("49.99"),
        bonus_tokens=5000,
        chat_limit=None,
        discount_multiplier=Decimal("0.3"),
        exclusive_persona_access=True,
    ),
)

DEFAULT_PACKAGES = (
    TokenPackage(
        package_id="basic",
        name="Basic Pack",
        base_tokens=100,
        bonus_tokens=0,
        price=Decimal("4.99"),
    ),
    TokenPackage(
        package_id="standard",
        name="Standard Pack",
        base_tokens=300,
        bonus_tokens=30,
        price=Decimal("9.99"),
    ),
    TokenPackage(
        package_id="premium",
        name="Premium Pack",
        base_tokens=1000,
        bonus_tokens=200,
        price=Decimal("19.99"),
    ),
)

DEFAULT_CUSTOM_BANDS = (
    CustomTokenBand(min_tokens=1, max_tokens=99, price_per_token=Decimal("0.05"), bonus_percentage=0),
    CustomTokenBand(min_tokens=100, max_tokens=499, price_per_token=Decimal("0.045"), bonus_percentage=5),
    CustomTokenBand(min_tokens=500, max_tokens=999, price_per_token=Decimal("0.04"), bonus_percentage=10),
    CustomTokenBand(min_tokens=1000, max_tokens=2499, price_per_token=Decimal("0.035"), bonus_percentage=20),
    CustomTokenBand(min_tokens=2500, max_tokens=None, price_per_token=Decimal("0.03"), bonus_percentage=40),
)


def build_default_catalog(currency: str = "USD") -> Catalog:
    return Catalog(
        version=DEFAULT_CATALOG_VERSION,
        currency=currency,
        tiers=DEFAULT_TIERS,
        packages=DEFAULT_PACKAGES,
        custom_bands=DEFAULT_CUSTOM_BANDS,
    )
