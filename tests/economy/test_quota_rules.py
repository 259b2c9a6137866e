from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.economy.quota.free_messages import FreeMessagePolicy
from app.economy.quota.random_source import SeededRandomSource, should_lock
from app.economy.quota.rules import locked_preview, message_cost

UTC = timezone.utc


@pytest.mark.parametrize(
    ("dominance_level", "multiplier", "expected"),
    [
        (0, Decimal("1.0"), Decimal("10")),
        (3, Decimal("1.0"), Decimal("16")),
        (0, Decimal("0.5"), Decimal("5")),
        (1, Decimal("0.3"), Decimal("4")),
        (5, Decimal("0.8"), Decimal("16")),
    ],
)
def test_message_cost_scales_with_dominance_and_discount(
    dominance_level: int,
    multiplier: Decimal,
    expected: Decimal,
) -> None:
    assert message_cost(dominance_level=dominance_level, discount_multiplier=multiplier) == expected


def test_locked_preview_hides_content() -> None:
    assert locked_preview("short") == "[locked]"
    preview = locked_preview("This message has a lot more to say than the preview shows")
    assert preview.endswith("... [locked]")
    assert "preview shows" not in preview


def test_seeded_source_gives_repeatable_lock_draws() -> None:
    first = SeededRandomSource(42)
    second = SeededRandomSource(42)
    draws_a = [should_lock(first, 0.5) for _ in range(20)]
    draws_b = [should_lock(second, 0.5) for _ in range(20)]

    assert draws_a == draws_b
    assert any(draws_a)
    assert not all(draws_a)


def test_lock_chance_extremes() -> None:
    source = SeededRandomSource(7)
    assert all(should_lock(source, 1.0) for _ in range(10))
    assert not any(should_lock(source, 0.0) for _ in range(10))


def test_free_message_policy_from_settings() -> None:
    lifetime = FreeMessagePolicy.from_settings(
        SimpleNamespace(free_message_policy="lifetime", free_message_limit=10)
    )
    rolling = FreeMessagePolicy.from_settings(
        SimpleNamespace(
            free_message_policy="Rolling",
            free_message_limit=3,
            free_message_window_hours=24,
        )
    )

    assert lifetime.kind == "lifetime"
    assert lifetime.window is None
    assert rolling.kind == "rolling"
    assert rolling.window == timedelta(hours=24)


def test_rolling_window_elapses_after_its_length() -> None:
    policy = FreeMessagePolicy(kind="rolling", limit=3, window=timedelta(hours=24))
    started = datetime(2026, 3, 1, tzinfo=UTC)

    assert policy.window_elapsed(started, started + timedelta(hours=23)) is False
    assert policy.window_elapsed(started, started + timedelta(hours=24)) is True
    assert policy.window_resets_at(started) == started + timedelta(hours=24)


def test_lifetime_policy_never_resets() -> None:
    policy = FreeMessagePolicy(kind="lifetime", limit=10)
    started = datetime(2020, 1, 1, tzinfo=UTC)
    assert policy.window_elapsed(started, datetime(2030, 1, 1, tzinfo=UTC)) is False
    assert policy.window_resets_at(started) is None


def test_unknown_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        FreeMessagePolicy(kind="weekly", limit=5)
