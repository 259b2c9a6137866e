from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.quota.free_messages import FreeMessagePolicy, get_free_message_status
from app.economy.quota.random_source import RandomSource, SeededRandomSource, SystemRandomSource
from app.economy.quota.service import QuotaGate

from .access import assert_internal_access
from .errors import DOMAIN_ERRORS, raise_http_error

router = APIRouter(tags=["chats"])

_system_random = SystemRandomSource()


class CreateChatRequest(BaseModel):
    user_id: int = Field(gt=0)
    persona_id: int = Field(gt=0)
    title: str | None = Field(default=None, max_length=200)


class CreateChatResponse(BaseModel):
    chat_id: int
    persona_id: int
    title: str
    current_count: int
    limit: int | None = None
    tier: str


class ChargeMessageRequest(BaseModel):
    user_id: int = Field(gt=0)
    content: str | None = None
    idempotency_key: str | None = Field(default=None, min_length=1, max_length=96)


class ChargeMessageResponse(BaseModel):
    is_free: bool
    token_cost: Decimal
    balance: Decimal
    free_remaining: int
    message_id: int | None = None


class AssistantMessageRequest(BaseModel):
    content: str = Field(min_length=1)
    seed: int | None = None


class AssistantMessageResponse(BaseModel):
    message_id: int
    is_locked: bool
    content: str
    unlock_price: Decimal | None = None


class UnlockMessageRequest(BaseModel):
    user_id: int = Field(gt=0)


class UnlockMessageResponse(BaseModel):
    message_id: int
    content: str
    unlock_price: Decimal
    balance: Decimal
    payment_id: UUID


class FreeMessagesResponse(BaseModel):
    user_id: int
    has_free_messages: bool
    used: int
    remaining: int
    limit: int
    policy: str
    window_resets_at: datetime | None = None


class TipRequest(BaseModel):
    user_id: int = Field(gt=0)
    amount: Decimal = Field(gt=0)
    note: str | None = Field(default=None, max_length=500)


class TipResponse(BaseModel):
    payment_id: UUID
    amount: Decimal
    balance: Decimal


def _free_message_policy() -> FreeMessagePolicy:
    return FreeMessagePolicy.from_settings(get_settings())


@router.post("/chats", response_model=CreateChatResponse, status_code=201)
async def create_chat(payload: CreateChatRequest, request: Request) -> CreateChatResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await QuotaGate.create_chat(
                session,
                user_id=payload.user_id,
                persona_id=payload.persona_id,
                title=payload.title,
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return CreateChatResponse(
        chat_id=result.chat_id,
        persona_id=result.persona_id,
        title=result.title,
        current_count=result.current_count,
        limit=result.limit,
        tier=result.tier,
    )


@router.post("/chats/{chat_id}/messages/charge", response_model=ChargeMessageResponse)
async def charge_message(
    chat_id: int,
    payload: ChargeMessageRequest,
    request: Request,
) -> ChargeMessageResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await QuotaGate.charge_message(
                session,
                user_id=payload.user_id,
                chat_id=chat_id,
                policy=_free_message_policy(),
                content=payload.content,
                idempotency_key=payload.idempotency_key,
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return ChargeMessageResponse(
        is_free=result.is_free,
        token_cost=result.token_cost,
        balance=result.balance,
        free_remaining=result.free_remaining,
        message_id=result.message_id,
    )


@router.post("/chats/{chat_id}/messages", response_model=AssistantMessageResponse, status_code=201)
async def record_assistant_message(
    chat_id: int,
    payload: AssistantMessageRequest,
    request: Request,
) -> AssistantMessageResponse:
    assert_internal_access(request)
    random_source: RandomSource = (
        SeededRandomSource(payload.seed) if payload.seed is not None else _system_random
    )
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await QuotaGate.record_assistant_message(
                session,
                chat_id=chat_id,
                content=payload.content,
                random_source=random_source,
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return AssistantMessageResponse(
        message_id=result.message_id,
        is_locked=result.is_locked,
        content=result.content,
        unlock_price=result.unlock_price,
    )


@router.post(
    "/chats/{chat_id}/messages/{message_id}/unlock",
    response_model=UnlockMessageResponse,
)
async def unlock_message(
    chat_id: int,
    message_id: int,
    payload: UnlockMessageRequest,
    request: Request,
) -> UnlockMessageResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await QuotaGate.unlock_message(
                session,
                user_id=payload.user_id,
                chat_id=chat_id,
                message_id=message_id,
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return UnlockMessageResponse(
        message_id=result.message_id,
        content=result.content,
        unlock_price=result.unlock_price,
        balance=result.balance,
        payment_id=result.payment_id,
    )


@router.get("/users/{user_id}/free-messages", response_model=FreeMessagesResponse)
async def get_free_messages(user_id: int, request: Request) -> FreeMessagesResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal() as session:
            status = await get_free_message_status(
                session,
                user_id=user_id,
                policy=_free_message_policy(),
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return FreeMessagesResponse(
        user_id=user_id,
        has_free_messages=status.has_free_messages,
        used=status.used,
        remaining=status.remaining,
        limit=status.limit,
        policy=status.policy,
        window_resets_at=status.window_resets_at,
    )


@router.post("/chats/{chat_id}/tips", response_model=TipResponse, status_code=201)
async def send_tip(chat_id: int, payload: TipRequest, request: Request) -> TipResponse:
    assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    try:
        async with SessionLocal.begin() as session:
            result = await QuotaGate.send_tip(
                session,
                user_id=payload.user_id,
                chat_id=chat_id,
                amount=payload.amount,
                note=payload.note,
                now_utc=now_utc,
            )
    except DOMAIN_ERRORS as exc:
        raise_http_error(exc)
    return TipResponse(payment_id=result.payment_id, amount=result.amount, balance=result.balance)
