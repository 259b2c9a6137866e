from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from app.db.session import SessionLocal
from app.economy.autotopup.service import AutoTopupService
from app.economy.autotopup.types import AutoTopupSettingsView

from .access import assert_internal_access
from .errors import DOMAIN_ERRORS, raise_http_error

router = APIRouter(tags=["auto-topup"])


class AutoTopupSettingsRequest(BaseModel):
    enabled: bool
    threshold_amount: Decimal = Field(ge=0)
    package_id: str = Field(min_length=1, max_length=32)
    payment_method_id: str | None = Field(default=None, max_length=128)


class AutoTopupSettingsResponse(BaseModel):
    user_id: int
    enabled: bool
    threshold_amount: Decimal
    package_id: str | None = None
    payment_method_id: str | None = None
    last_topup_at: datetime | None = None


def _as_response(view: AutoTopupSettingsView) -> AutoTopupSettingsResponse:
    return AutoTopupSettingsResponse(
        user_id=view.user_id,
        enabled=view.enabled,
        threshold_amount=view.threshold_amount,
        package_id=view.package_id,
        payment_method_id=view.payment_method_id,
        last_topup_at=view.last_topup_at,
    )


@router.get("/users/{user_id}/auto-topup", response_model=AutoTopupSettingsResponse)
async def get_auto_topup(user_id: int, request: Request) -> AutoTopupSettingsResponse:
    assert_internal_access(request)
    try:
        async with SessionLocal() as session:
            view = await AutoTopupService.get_settings(session, user_id=user_id)
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return _as_response(view)


@router.put("/users/{user_id}/auto-topup", response_model=AutoTopupSettingsResponse)
async def update_auto_topup(
    user_id: int,
    payload: AutoTopupSettingsRequest,
    request: Request,
) -> AutoTopupSettingsResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            view = await AutoTopupService.update_settings(
                session,
                user_id=user_id,
                enabled=payload.enabled,
                threshold_amount=payload.threshold_amount,
                package_id=payload.package_id,
                payment_method_id=payload.payment_method_id,
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return _as_response(view)
