from __future__ import annotations

from decimal import Decimal

from app.economy.catalog.errors import CatalogValidationError
from app.economy.catalog.types import Catalog, CustomTokenBand, SubscriptionTier, TokenPackage


def catalog_to_payload(catalog: Catalog) -> dict[str, object]:
    return {
        "currency": catalog.currency,
        "tiers": [
            {
                "tier_id": tier.tier_id,
                "name": tier.name,
                "price": str(tier.price),
                "bonus_tokens": tier.bonus_tokens,
                "chat_limit": tier.chat_limit,
                "discount_multiplier": str(tier.discount_multiplier),
                "exclusive_persona_access": tier.exclusive_persona_access,
                "duration_days": tier.duration_days,
            }
            for tier in catalog.tiers
        ],
        "packages": [
            {
                "package_id": package.package_id,
                "name": package.name,
                "base_tokens": package.base_tokens,
                "bonus_tokens": package.bonus_tokens,
                "price": str(package.price),
            }
            for package in catalog.packages
        ],
        "custom_bands": [
            {
                "min_tokens": band.min_tokens,
                "max_tokens": band.max_tokens,
                "price_per_token": str(band.price_per_token),
                "bonus_percentage": band.bonus_percentage,
            }
            for band in catalog.custom_bands
        ],
    }


def catalog_from_payload(payload: dict[str, object], *, version: int) -> Catalog:
    try:
        tiers = tuple(
            SubscriptionTier(
                tier_id=str(item["tier_id"]),
                name=str(item["name"]),
                price=Decimal(str(item["price"])),
                bonus_tokens=int(item["bonus_tokens"]),
                chat_limit=None if item.get("chat_limit") is None else int(item["chat_limit"]),
                discount_multiplier=Decimal(str(item["discount_multiplier"])),
                exclusive_persona_access=bool(item["exclusive_persona_access"]),
                duration_days=int(item.get("duration_days", 30)),
            )
            for item in payload["tiers"]
        )
        packages = tuple(
            TokenPackage(
                package_id=str(item["package_id"]),
                name=str(item["name"]),
                base_tokens=int(item["base_tokens"]),
                bonus_tokens=int(item.get("bonus_tokens", 0)),
                price=Decimal(str(item["price"])),
            )
            for item in payload["packages"]
        )
        bands = tuple(
            CustomTokenBand(
                min_tokens=int(item["min_tokens"]),
                max_tokens=None if item.get("max_tokens") is None else int(item["max_tokens"]),
                price_per_token=Decimal(str(item["price_per_token"])),
                bonus_percentage=int(item["bonus_percentage"]),
            )
            for item in payload["custom_bands"]
        )
        currency = str(payload.get("currency", "USD")).upper()
    except (KeyError, TypeError, ValueError, ArithmeticError, AttributeError) as exc:
        raise CatalogValidationError(f"malformed catalog payload: {exc}") from exc

    return Catalog(
        version=version,
        currency=currency,
        tiers=tiers,
        packages=packages,
        custom_bands=bands,
    )
