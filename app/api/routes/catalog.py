from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Request
from pydantic import BaseModel

from app.db.session import SessionLocal
from app.economy.catalog.store import catalog_store

from .access import assert_internal_access
from .errors import DOMAIN_ERRORS, raise_http_error

router = APIRouter(tags=["catalog"])


class TierResponse(BaseModel):
    tier_id: str
    name: str
    price: Decimal
    bonus_tokens: int
    chat_limit: int | None
    discount_multiplier: Decimal
    exclusive_persona_access: bool
    duration_days: int


class TiersResponse(BaseModel):
    version: int
    currency: str
    tiers: list[TierResponse]


class PackageResponse(BaseModel):
    package_id: str
    name: str
    base_tokens: int
    bonus_tokens: int
    total_tokens: int
    price: Decimal


class CustomBandResponse(BaseModel):
    min_tokens: int
    max_tokens: int | None
    price_per_token: Decimal
    bonus_percentage: int


class PackagesResponse(BaseModel):
    version: int
    currency: str
    packages: list[PackageResponse]
    custom_bands: list[CustomBandResponse]


@router.get("/catalog/tiers", response_model=TiersResponse)
async def list_tiers(request: Request) -> TiersResponse:
    assert_internal_access(request)
    try:
        async with SessionLocal() as session:
            catalog = await catalog_store.get(session)
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)

    return TiersResponse(
        version=catalog.version,
        currency=catalog.currency,
        tiers=[
            TierResponse(
                tier_id=tier.tier_id,
                name=tier.name,
                price=tier.price,
                bonus_tokens=tier.bonus_tokens,
                chat_limit=tier.chat_limit,
                discount_multiplier=tier.discount_multiplier,
                exclusive_persona_access=tier.exclusive_persona_access,
                duration_days=tier.duration_days,
            )
            for tier in catalog.tiers
        ],
    )


@router.get("/catalog/packages", response_model=PackagesResponse)
async def list_packages(request: Request) -> PackagesResponse:
    assert_internal_access(request)
    try:
        async with SessionLocal() as session:
            catalog = await catalog_store.get(session)
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)

    return PackagesResponse(
        version=catalog.version,
        currency=catalog.currency,
        packages=[
            PackageResponse(
                package_id=package.package_id,
                name=package.name,
                base_tokens=package.base_tokens,
                bonus_tokens=package.bonus_tokens,
                total_tokens=package.total_tokens,
                price=package.price,
            )
            for package in catalog.packages
        ],
        custom_bands=[
            CustomBandResponse(
                min_tokens=band.min_tokens,
                max_tokens=band.max_tokens,
                price_per_token=band.price_per_token,
                bonus_percentage=band.bonus_percentage,
            )
            for band in catalog.custom_bands
        ],
    )
