from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from app.economy.catalog.errors import CatalogValidationError

TIER_ORDER = ("free", "basic", "premium", "vip")


@dataclass(frozen=True, slots=True)
class SubscriptionTier:
    tier_id: str
    name: str
    price: Decimal
    bonus_tokens: int
    # None means unlimited.
    chat_limit: int | None
    discount_multiplier: Decimal
    exclusive_persona_access: bool
    duration_days: int = 30

    @property
    def is_paid(self) -> bool:
        return self.price > 0


@dataclass(frozen=True, slots=True)
class TokenPackage:
    package_id: str
    name: str
    base_tokens: int
    bonus_tokens: int
    price: Decimal

    @property
    def total_tokens(self) -> int:
        return self.base_tokens + self.bonus_tokens


@dataclass(frozen=True, slots=True)
class CustomTokenBand:
    min_tokens: int
    # None marks the open-ended top band.
    max_tokens: int | None
    price_per_token: Decimal
    bonus_percentage: int

    def contains(self, amount: int) -> bool:
        if amount < self.min_tokens:
            return False
        return self.max_tokens is None or amount <= self.max_tokens


@dataclass(frozen=True, slots=True)
class CustomPrice:
    amount: int
    bonus_tokens: int
    total_tokens: int
    price: Decimal
    band: CustomTokenBand


@dataclass(frozen=True, slots=True)
class Catalog:
    version: int
    currency: str
    tiers: tuple[SubscriptionTier, ...]
    packages: tuple[TokenPackage, ...]
    custom_bands: tuple[CustomTokenBand, ...]

    def __post_init__(self) -> None:
        _validate_tiers(self.tiers)
        _validate_packages(self.packages)
        _validate_bands(self.custom_bands)


def _validate_tiers(tiers: tuple[SubscriptionTier, ...]) -> None:
    tier_ids = tuple(tier.tier_id for tier in tiers)
    if tier_ids != TIER_ORDER:
        raise CatalogValidationError(f"tiers must be listed in upgrade order: {', '.join(TIER_ORDER)}")
    for tier in tiers:
        if tier.price < 0:
            raise CatalogValidationError(f"tier {tier.tier_id} has a negative price")
        if tier.bonus_tokens < 0:
            raise CatalogValidationError(f"tier {tier.tier_id} has negative bonus tokens")
        if tier.chat_limit is not None and tier.chat_limit < 0:
            raise CatalogValidationError(f"tier {tier.tier_id} has a negative chat limit")
        if not (Decimal("0") < tier.discount_multiplier <= Decimal("1")):
            raise CatalogValidationError(f"tier {tier.tier_id} discount multiplier out of range")
        if tier.duration_days <= 0:
            raise CatalogValidationError(f"tier {tier.tier_id} duration must be positive")


def _validate_packages(packages: tuple[TokenPackage, ...]) -> None:
    seen: set[str] = set()
    for package in packages:
        if package.package_id in seen:
            raise CatalogValidationError(f"duplicate package {package.package_id}")
        seen.add(package.package_id)
        if package.base_tokens <= 0 or package.bonus_tokens < 0:
            raise CatalogValidationError(f"package {package.package_id} has invalid token counts")
        if package.price <= 0:
            raise CatalogValidationError(f"package {package.package_id} must have a positive price")


def _validate_bands(bands: tuple[CustomTokenBand, ...]) -> None:
    if not bands:
        raise CatalogValidationError("at least one custom token band is required")
    if bands[0].min_tokens < 1:
        raise CatalogValidationError("custom token bands must start at a positive amount")
    for index, band in enumerate(bands):
        is_last = index == len(bands) - 1
        if band.max_tokens is None and not is_last:
            raise CatalogValidationError("only the last custom token band may be open-ended")
        if band.max_tokens is not None and band.max_tokens < band.min_tokens:
            raise CatalogValidationError("custom token band max is below its min")
        if band.price_per_token <= 0:
            raise CatalogValidationError("custom token band price must be positive")
        if not 0 <= band.bonus_percentage <= 100:
            raise CatalogValidationError("custom token band bonus must be within 0..100")
        if index > 0:
            previous = bands[index - 1]
            if band.min_tokens != previous.max_tokens + 1:
                raise CatalogValidationError("custom token bands must be contiguous")
