from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from app.economy.catalog.errors import (
    AmountAboveMaximumError,
    AmountBelowMinimumError,
    UnknownPackageError,
    UnknownTierError,
)
from app.economy.catalog.types import (
    TIER_ORDER,
    Catalog,
    CustomPrice,
    CustomTokenBand,
    SubscriptionTier,
    TokenPackage,
)

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def get_tier(catalog: Catalog, tier_id: str) -> SubscriptionTier:
    for tier in catalog.tiers:
        if tier.tier_id == tier_id:
            return tier
    raise UnknownTierError(tier_id)


def get_package(catalog: Catalog, package_id: str) -> TokenPackage:
    for package in catalog.packages:
        if package.package_id == package_id:
            return package
    raise UnknownPackageError(package_id)


def next_tier(catalog: Catalog, tier_id: str) -> str | None:
    get_tier(catalog, tier_id)
    position = TIER_ORDER.index(tier_id)
    if position + 1 >= len(TIER_ORDER):
        return None
    return TIER_ORDER[position + 1]


def total_for_package(catalog: Catalog, package_id: str) -> int:
    return get_package(catalog, package_id).total_tokens


def resolve_custom_band(catalog: Catalog, amount: int) -> CustomTokenBand:
    minimum = catalog.custom_bands[0].min_tokens
    if amount < minimum:
        raise AmountBelowMinimumError(amount, minimum)
    for band in catalog.custom_bands:
        if band.contains(amount):
            return band
    raise AmountAboveMaximumError(amount, catalog.custom_bands[-1].max_tokens or minimum)


def price_for_custom_amount(catalog: Catalog, amount: int) -> CustomPrice:
    band = resolve_custom_band(catalog, amount)
    bonus_tokens = (amount * band.bonus_percentage) // 100
    return CustomPrice(
        amount=amount,
        bonus_tokens=bonus_tokens,
        total_tokens=amount + bonus_tokens,
        price=quantize_money(band.price_per_token * amount),
        band=band,
    )
