from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(slots=True)
class ChatCreateResult:
    chat_id: int
    persona_id: int
    title: str
    current_count: int
    limit: int | None
    tier: str


@dataclass(slots=True)
class MessageChargeResult:
    is_free: bool
    token_cost: Decimal
    balance: Decimal
    free_remaining: int
    message_id: int | None = None


@dataclass(slots=True)
class FreeMessageStatus:
    has_free_messages: bool
    used: int
    remaining: int
    limit: int
    policy: str
    window_resets_at: datetime | None = None


@dataclass(slots=True)
class AssistantMessageResult:
    message_id: int
    is_locked: bool
    content: str
    unlock_price: Decimal | None


@dataclass(slots=True)
class UnlockResult:
    message_id: int
    content: str
    unlock_price: Decimal
    balance: Decimal
    payment_id: UUID


@dataclass(slots=True)
class TipResult:
    payment_id: UUID
    amount: Decimal
    balance: Decimal
