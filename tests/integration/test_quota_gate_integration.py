from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.db.session import SessionLocal
from app.economy.ledger.errors import InsufficientBalanceError
from app.economy.ledger.service import LedgerService
from app.economy.quota.errors import (
    AlreadyUnlockedError,
    ChatLimitReachedError,
    PersonaAccessDeniedError,
)
from app.economy.quota.free_messages import FreeMessagePolicy, get_free_message_status
from app.economy.quota.random_source import SeededRandomSource
from app.economy.quota.service import QuotaGate
from tests.integration.ledger_fixtures import UTC, _create_chat, _create_persona, _create_user

LIFETIME_TWO = FreeMessagePolicy(kind="lifetime", limit=2)
NO_FREE = FreeMessagePolicy(kind="lifetime", limit=0)


async def _create_chat_via_gate(user_id: int, persona_id: int):
    async with SessionLocal.begin() as session:
        return await QuotaGate.create_chat(
            session,
            user_id=user_id,
            persona_id=persona_id,
            now_utc=datetime.now(UTC),
        )


async def _charge(user_id: int, chat_id: int, policy: FreeMessagePolicy, **kwargs: object):
    async with SessionLocal.begin() as session:
        return await QuotaGate.charge_message(
            session,
            user_id=user_id,
            chat_id=chat_id,
            policy=policy,
            now_utc=kwargs.pop("now_utc", datetime.now(UTC)),
            **kwargs,
        )


@pytest.mark.asyncio
async def test_free_tier_chat_limit_points_to_next_tier() -> None:
    user_id = await _create_user()
    persona_id = await _create_persona()

    first = await _create_chat_via_gate(user_id, persona_id)
    assert first.current_count == 1
    assert first.limit == 1

    with pytest.raises(ChatLimitReachedError) as exc_info:
        await _create_chat_via_gate(user_id, persona_id)
    assert exc_info.value.current_count == 1
    assert exc_info.value.limit == 1
    assert exc_info.value.tier == "free"
    assert exc_info.value.next_tier == "basic"


@pytest.mark.asyncio
async def test_expired_subscription_falls_back_to_free_limit() -> None:
    user_id = await _create_user(
        subscription_status="basic",
        subscription_expiry=datetime.now(UTC) - timedelta(minutes=1),
    )
    persona_id = await _create_persona()

    await _create_chat_via_gate(user_id, persona_id)
    with pytest.raises(ChatLimitReachedError) as exc_info:
        await _create_chat_via_gate(user_id, persona_id)
    assert exc_info.value.tier == "free"


@pytest.mark.asyncio
async def test_exclusive_persona_requires_premium_access() -> None:
    free_user = await _create_user()
    premium_user = await _create_user(
        subscription_status="premium",
        subscription_expiry=datetime.now(UTC) + timedelta(days=5),
    )
    persona_id = await _create_persona(is_exclusive=True)

    with pytest.raises(PersonaAccessDeniedError) as exc_info:
        await _create_chat_via_gate(free_user, persona_id)
    assert exc_info.value.next_tier == "basic"

    created = await _create_chat_via_gate(premium_user, persona_id)
    assert created.limit == 20


@pytest.mark.asyncio
async def test_free_messages_are_used_before_tokens() -> None:
    user_id = await _create_user(balance="15")
    persona_id = await _create_persona(dominance_level=0)
    chat_id = await _create_chat(user_id=user_id, persona_id=persona_id)

    first = await _charge(user_id, chat_id, LIFETIME_TWO, content="hi")
    second = await _charge(user_id, chat_id, LIFETIME_TWO)
    third = await _charge(user_id, chat_id, LIFETIME_TWO)

    assert (first.is_free, first.free_remaining) == (True, 1)
    assert first.message_id is not None
    assert (second.is_free, second.free_remaining) == (True, 0)
    assert third.is_free is False
    assert third.token_cost == Decimal("10")
    assert third.balance == Decimal("5.00")

    with pytest.raises(InsufficientBalanceError):
        await _charge(user_id, chat_id, LIFETIME_TWO)

    async with SessionLocal() as session:
        status = await get_free_message_status(
            session,
            user_id=user_id,
            policy=LIFETIME_TWO,
            now_utc=datetime.now(UTC),
        )
    assert status.has_free_messages is False
    assert status.used == 2


@pytest.mark.asyncio
async def test_rolling_free_messages_reset_after_window() -> None:
    user_id = await _create_user()
    persona_id = await _create_persona()
    chat_id = await _create_chat(user_id=user_id, persona_id=persona_id)
    policy = FreeMessagePolicy(kind="rolling", limit=1, window=timedelta(hours=24))
    start = datetime.now(UTC)

    first = await _charge(user_id, chat_id, policy, now_utc=start)
    assert first.is_free is True
    with pytest.raises(InsufficientBalanceError):
        await _charge(user_id, chat_id, policy, now_utc=start + timedelta(hours=1))

    later = await _charge(user_id, chat_id, policy, now_utc=start + timedelta(hours=25))
    assert later.is_free is True


@pytest.mark.asyncio
async def test_premium_discount_applies_to_message_cost() -> None:
    user_id = await _create_user(
        balance="100",
        subscription_status="premium",
        subscription_expiry=datetime.now(UTC) + timedelta(days=5),
    )
    persona_id = await _create_persona(dominance_level=3)
    chat_id = await _create_chat(user_id=user_id, persona_id=persona_id)

    result = await _charge(user_id, chat_id, NO_FREE)

    assert result.token_cost == Decimal("8")
    assert result.balance == Decimal("92.00")


@pytest.mark.asyncio
async def test_locked_message_unlocks_once() -> None:
    user_id = await _create_user(balance="1.00")
    persona_id = await _create_persona(lock_message_chance=1.0, lock_message_price="0.50")
    chat_id = await _create_chat(user_id=user_id, persona_id=persona_id)

    async with SessionLocal.begin() as session:
        reply = await QuotaGate.record_assistant_message(
            session,
            chat_id=chat_id,
            content="A secret the persona only shares after unlocking",
            random_source=SeededRandomSource(1),
            now_utc=datetime.now(UTC),
        )
    assert reply.is_locked is True
    assert reply.unlock_price == Decimal("0.50")
    assert "secret the persona only shares after" not in reply.content

    async with SessionLocal.begin() as session:
        unlocked = await QuotaGate.unlock_message(
            session,
            user_id=user_id,
            chat_id=chat_id,
            message_id=reply.message_id,
            now_utc=datetime.now(UTC),
        )
    assert unlocked.balance == Decimal("0.50")
    assert unlocked.content.startswith("A secret")

    with pytest.raises(AlreadyUnlockedError):
        async with SessionLocal.begin() as session:
            await QuotaGate.unlock_message(
                session,
                user_id=user_id,
                chat_id=chat_id,
                message_id=reply.message_id,
                now_utc=datetime.now(UTC),
            )

    async with SessionLocal() as session:
        assert await LedgerService.get_balance(session, user_id=user_id) == Decimal("0.50")


@pytest.mark.asyncio
async def test_unlock_without_tokens_keeps_message_locked() -> None:
    user_id = await _create_user(balance="0")
    persona_id = await _create_persona(lock_message_chance=1.0, lock_message_price="0.50")
    chat_id = await _create_chat(user_id=user_id, persona_id=persona_id)

    async with SessionLocal.begin() as session:
        reply = await QuotaGate.record_assistant_message(
            session,
            chat_id=chat_id,
            content="locked content",
            random_source=SeededRandomSource(3),
            now_utc=datetime.now(UTC),
        )

    with pytest.raises(InsufficientBalanceError):
        async with SessionLocal.begin() as session:
            await QuotaGate.unlock_message(
                session,
                user_id=user_id,
                chat_id=chat_id,
                message_id=reply.message_id,
                now_utc=datetime.now(UTC),
            )

    async with SessionLocal.begin() as session:
        await LedgerService.credit(
            session,
            user_id=user_id,
            amount=1,
            reason="ADMIN_CREDIT",
            idempotency_key="credit:test:unlock-retry",
            now_utc=datetime.now(UTC),
        )
        unlocked = await QuotaGate.unlock_message(
            session,
            user_id=user_id,
            chat_id=chat_id,
            message_id=reply.message_id,
            now_utc=datetime.now(UTC),
        )
    assert unlocked.balance == Decimal("0.50")


@pytest.mark.asyncio
async def test_tip_debits_balance() -> None:
    user_id = await _create_user(balance="20")
    persona_id = await _create_persona()
    chat_id = await _create_chat(user_id=user_id, persona_id=persona_id)

    async with SessionLocal.begin() as session:
        tip = await QuotaGate.send_tip(
            session,
            user_id=user_id,
            chat_id=chat_id,
            amount=Decimal("7.25"),
            now_utc=datetime.now(UTC),
        )

    assert tip.amount == Decimal("7.25")
    assert tip.balance == Decimal("12.75")


@pytest.mark.asyncio
async def test_client_message_keys_are_scoped_per_user() -> None:
    first_user = await _create_user(balance="100")
    second_user = await _create_user(balance="100")
    persona_id = await _create_persona(dominance_level=0)
    first_chat = await _create_chat(user_id=first_user, persona_id=persona_id)
    second_chat = await _create_chat(user_id=second_user, persona_id=persona_id)

    first = await _charge(first_user, first_chat, NO_FREE, idempotency_key="client-key-1")
    second = await _charge(second_user, second_chat, NO_FREE, idempotency_key="client-key-1")
    retried = await _charge(second_user, second_chat, NO_FREE, idempotency_key="client-key-1")

    assert first.balance == Decimal("90.00")
    assert second.balance == Decimal("90.00")
    assert retried.balance == Decimal("90.00")

    async with SessionLocal() as session:
        assert await LedgerService.get_balance(session, user_id=first_user) == Decimal("90.00")
        assert await LedgerService.get_balance(session, user_id=second_user) == Decimal("90.00")


@pytest.mark.asyncio
async def test_message_key_cannot_prepay_an_unlock() -> None:
    user_id = await _create_user(balance="100")
    persona_id = await _create_persona(lock_message_chance=1.0, lock_message_price="50")
    chat_id = await _create_chat(user_id=user_id, persona_id=persona_id)

    async with SessionLocal.begin() as session:
        reply = await QuotaGate.record_assistant_message(
            session,
            chat_id=chat_id,
            content="content that costs fifty tokens to read",
            random_source=SeededRandomSource(5),
            now_utc=datetime.now(UTC),
        )

    await _charge(user_id, chat_id, NO_FREE, idempotency_key=f"debit:unlock:{reply.message_id}")

    async with SessionLocal.begin() as session:
        unlocked = await QuotaGate.unlock_message(
            session,
            user_id=user_id,
            chat_id=chat_id,
            message_id=reply.message_id,
            now_utc=datetime.now(UTC),
        )

    assert unlocked.balance == Decimal("40.00")
    async with SessionLocal() as session:
        assert await LedgerService.get_balance(session, user_id=user_id) == Decimal("40.00")
