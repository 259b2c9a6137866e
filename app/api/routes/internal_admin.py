from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from app.db.session import SessionLocal
from app.economy.autotopup.runner import run_auto_topups
from app.economy.catalog.store import publish_catalog_version
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import REASON_ADMIN_CREDIT

from .access import assert_internal_access, require_admin_actor
from .errors import DOMAIN_ERRORS, raise_http_error

router = APIRouter(tags=["internal", "admin"])
logger = structlog.get_logger(__name__)


class TierPayload(BaseModel):
    tier_id: str
    name: str
    price: Decimal = Field(ge=0)
    bonus_tokens: int = Field(ge=0)
    chat_limit: int | None = Field(default=None, ge=0)
    discount_multiplier: Decimal = Field(gt=0, le=1)
    exclusive_persona_access: bool = False
    duration_days: int = Field(default=30, ge=1)


class PackagePayload(BaseModel):
    package_id: str = Field(min_length=1, max_length=32)
    name: str
    base_tokens: int = Field(gt=0)
    bonus_tokens: int = Field(default=0, ge=0)
    price: Decimal = Field(gt=0)


class CustomBandPayload(BaseModel):
    min_tokens: int = Field(ge=1)
    max_tokens: int | None = None
    price_per_token: Decimal = Field(gt=0)
    bonus_percentage: int = Field(ge=0, le=100)


class CatalogVersionRequest(BaseModel):
    currency: str = Field(default="USD", min_length=3, max_length=3)
    tiers: list[TierPayload]
    packages: list[PackagePayload]
    custom_bands: list[CustomBandPayload]


class CatalogVersionResponse(BaseModel):
    version: int
    currency: str
    tiers: int
    packages: int
    custom_bands: int


class AdminCreditRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    idempotency_key: str = Field(min_length=1, max_length=96)
    note: str | None = Field(default=None, max_length=500)


class AdminCreditResponse(BaseModel):
    user_id: int
    balance: Decimal
    idempotent_replay: bool


@router.post(
    "/internal/admin/catalog/versions",
    response_model=CatalogVersionResponse,
    status_code=201,
)
async def publish_catalog(payload: CatalogVersionRequest, request: Request) -> CatalogVersionResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            actor_user_id = await require_admin_actor(session, request)
            catalog = await publish_catalog_version(
                session,
                payload=payload.model_dump(mode="json"),
                published_by_user_id=actor_user_id,
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return CatalogVersionResponse(
        version=catalog.version,
        currency=catalog.currency,
        tiers=len(catalog.tiers),
        packages=len(catalog.packages),
        custom_bands=len(catalog.custom_bands),
    )


@router.post(
    "/internal/admin/users/{user_id}/credits",
    response_model=AdminCreditResponse,
)
async def grant_credits(
    user_id: int,
    payload: AdminCreditRequest,
    request: Request,
) -> AdminCreditResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            actor_user_id = await require_admin_actor(session, request)
            result = await LedgerService.credit(
                session,
                user_id=user_id,
                amount=payload.amount,
                reason=REASON_ADMIN_CREDIT,
                idempotency_key=f"credit:admin:{user_id}:{payload.idempotency_key}",
                metadata={"actor_user_id": actor_user_id, "note": payload.note},
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    logger.info("admin_credit_granted", user_id=user_id, actor_user_id=actor_user_id)
    return AdminCreditResponse(
        user_id=user_id,
        balance=result.balance,
        idempotent_replay=result.idempotent_replay,
    )


@router.post("/internal/jobs/auto-topup")
async def trigger_auto_topup(request: Request) -> dict[str, int]:
    assert_internal_access(request)
    return await run_auto_topups(datetime.now(timezone.utc))
