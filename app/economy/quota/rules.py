from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

BASE_MESSAGE_COST = 10
DOMINANCE_COST_STEP = 2
PREVIEW_LENGTH = 24


def message_cost(*, dominance_level: int, discount_multiplier: Decimal) -> Decimal:
    raw_cost = Decimal(BASE_MESSAGE_COST + DOMINANCE_COST_STEP * dominance_level) * discount_multiplier
    return raw_cost.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def locked_preview(content: str) -> str:
    if len(content) <= PREVIEW_LENGTH:
        return "[locked]"
    return f"{content[:PREVIEW_LENGTH].rstrip()}... [locked]"
