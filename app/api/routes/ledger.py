from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from app.db.session import SessionLocal
from app.economy.ledger.service import LedgerService

from .access import assert_internal_access
from .errors import DOMAIN_ERRORS, raise_http_error

router = APIRouter(tags=["ledger"])


class BalanceResponse(BaseModel):
    user_id: int
    balance: Decimal


class LedgerEntryResponse(BaseModel):
    id: int
    direction: str
    amount: Decimal
    balance_after: Decimal
    reason: str
    payment_id: UUID | None = None
    subscription_id: UUID | None = None
    created_at: datetime


class TransactionsResponse(BaseModel):
    user_id: int
    items: list[LedgerEntryResponse]


@router.get("/users/{user_id}/balance", response_model=BalanceResponse)
async def get_balance(user_id: int, request: Request) -> BalanceResponse:
    assert_internal_access(request)
    try:
        async with SessionLocal() as session:
            balance = await LedgerService.get_balance(session, user_id=user_id)
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return BalanceResponse(user_id=user_id, balance=balance)


@router.get("/users/{user_id}/transactions", response_model=TransactionsResponse)
async def list_transactions(
    user_id: int,
    request: Request,
    limit: int = Query(default=50, ge=1, le=500),
) -> TransactionsResponse:
    assert_internal_access(request)
    try:
        async with SessionLocal() as session:
            entries = await LedgerService.list_transactions(session, user_id=user_id, limit=limit)
            items = [
                LedgerEntryResponse(
                    id=entry.id,
                    direction=entry.direction,
                    amount=entry.amount,
                    balance_after=entry.balance_after,
                    reason=entry.reason,
                    payment_id=entry.payment_id,
                    subscription_id=entry.subscription_id,
                    created_at=entry.created_at,
                )
                for entry in entries
            ]
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return TransactionsResponse(user_id=user_id, items=items)
