from app.economy.catalog.defaults import build_default_catalog
from app.economy.catalog.pricing import (
    get_package,
    get_tier,
    next_tier,
    price_for_custom_amount,
    resolve_custom_band,
    total_for_package,
)
from app.economy.catalog.store import CatalogStore, catalog_store, publish_catalog_version
from app.economy.catalog.types import (
    TIER_ORDER,
    Catalog,
    CustomPrice,
    CustomTokenBand,
    SubscriptionTier,
    TokenPackage,
)

__all__ = [
    "TIER_ORDER",
    "Catalog",
    "CatalogStore",
    "CustomPrice",
    "CustomTokenBand",
    "SubscriptionTier",
    "TokenPackage",
    "build_default_catalog",
    "catalog_store",
    "get_package",
    "get_tier",
    "next_tier",
    "price_for_custom_amount",
    "publish_catalog_version",
    "resolve_custom_band",
    "total_for_package",
]
