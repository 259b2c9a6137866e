from __future__ import annotations

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.db.models.ledger_entries import LedgerEntry
from app.db.session import SessionLocal
from app.economy.ledger.errors import (
    IdempotencyKeyConflictError,
    InsufficientBalanceError,
    InvalidAmountError,
    UserNotFoundError,
)
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import REASON_ADMIN_CREDIT, REASON_MESSAGE_CHARGE
from tests.integration.ledger_fixtures import UTC, _create_user


@pytest.mark.asyncio
async def test_credit_and_debit_record_balance_after() -> None:
    user_id = await _create_user()
    now_utc = datetime.now(UTC)

    async with SessionLocal.begin() as session:
        credited = await LedgerService.credit(
            session,
            user_id=user_id,
            amount=25,
            reason=REASON_ADMIN_CREDIT,
            idempotency_key="credit:test:1",
            now_utc=now_utc,
        )
        debited = await LedgerService.debit(
            session,
            user_id=user_id,
            amount=Decimal("10.50"),
            reason=REASON_MESSAGE_CHARGE,
            idempotency_key="debit:test:1",
            now_utc=now_utc,
        )

    assert credited.balance == Decimal("25.00")
    assert debited.balance == Decimal("14.50")

    async with SessionLocal() as session:
        entries = await LedgerService.list_transactions(session, user_id=user_id)
    assert [entry.direction for entry in entries] == ["DEBIT", "CREDIT"]
    assert entries[0].balance_after == Decimal("14.50")


@pytest.mark.asyncio
async def test_debit_never_takes_balance_below_zero() -> None:
    user_id = await _create_user(balance="5")
    now_utc = datetime.now(UTC)

    with pytest.raises(InsufficientBalanceError) as exc_info:
        async with SessionLocal.begin() as session:
            await LedgerService.debit(
                session,
                user_id=user_id,
                amount=Decimal("5.01"),
                reason=REASON_MESSAGE_CHARGE,
                idempotency_key="debit:test:over",
                now_utc=now_utc,
            )
    assert exc_info.value.balance == Decimal("5.00")
    assert exc_info.value.required == Decimal("5.01")

    async with SessionLocal.begin() as session:
        exact = await LedgerService.debit(
            session,
            user_id=user_id,
            amount=5,
            reason=REASON_MESSAGE_CHARGE,
            idempotency_key="debit:test:exact",
            now_utc=now_utc,
        )
    assert exact.balance == Decimal("0.00")


@pytest.mark.asyncio
async def test_replayed_idempotency_key_applies_once() -> None:
    user_id = await _create_user()
    now_utc = datetime.now(UTC)

    for _ in range(3):
        async with SessionLocal.begin() as session:
            result = await LedgerService.credit(
                session,
                user_id=user_id,
                amount=10,
                reason=REASON_ADMIN_CREDIT,
                idempotency_key="credit:test:replay",
                now_utc=now_utc,
            )

    assert result.idempotent_replay is True
    assert result.balance == Decimal("10.00")
    async with SessionLocal() as session:
        entry_count = await session.scalar(
            select(func.count(LedgerEntry.id)).where(LedgerEntry.user_id == user_id)
        )
    assert entry_count == 1


@pytest.mark.asyncio
async def test_invalid_amount_and_unknown_user_are_rejected() -> None:
    user_id = await _create_user()
    now_utc = datetime.now(UTC)

    async with SessionLocal.begin() as session:
        with pytest.raises(InvalidAmountError):
            await LedgerService.credit(
                session,
                user_id=user_id,
                amount=0,
                reason=REASON_ADMIN_CREDIT,
                idempotency_key="credit:test:zero",
                now_utc=now_utc,
            )
        with pytest.raises(UserNotFoundError):
            await LedgerService.credit(
                session,
                user_id=user_id + 999,
                amount=1,
                reason=REASON_ADMIN_CREDIT,
                idempotency_key="credit:test:missing",
                now_utc=now_utc,
            )


@pytest.mark.asyncio
async def test_reused_key_with_different_user_direction_or_amount_conflicts() -> None:
    first_user = await _create_user(balance="50")
    second_user = await _create_user(balance="50")
    now_utc = datetime.now(UTC)

    async with SessionLocal.begin() as session:
        await LedgerService.debit(
            session,
            user_id=first_user,
            amount=10,
            reason=REASON_MESSAGE_CHARGE,
            idempotency_key="debit:test:shared",
            now_utc=now_utc,
        )

    attempts = (
        (LedgerService.debit, second_user, 10),
        (LedgerService.credit, first_user, 10),
        (LedgerService.debit, first_user, 25),
    )
    for operation, user_id, amount in attempts:
        with pytest.raises(IdempotencyKeyConflictError):
            async with SessionLocal.begin() as session:
                await operation(
                    session,
                    user_id=user_id,
                    amount=amount,
                    reason=REASON_MESSAGE_CHARGE,
                    idempotency_key="debit:test:shared",
                    now_utc=now_utc,
                )

    async with SessionLocal() as session:
        assert await LedgerService.get_balance(session, user_id=first_user) == Decimal("40.00")
        assert await LedgerService.get_balance(session, user_id=second_user) == Decimal("50.00")


async def _debit_in_own_session(user_id: int, key: str) -> Decimal:
    async with SessionLocal.begin() as session:
        result = await LedgerService.debit(
            session,
            user_id=user_id,
            amount=30,
            reason=REASON_MESSAGE_CHARGE,
            idempotency_key=key,
            now_utc=datetime.now(UTC),
        )
    return result.balance


@pytest.mark.asyncio
async def test_concurrent_debits_cannot_overdraw() -> None:
    user_id = await _create_user(balance="50")

    results = await asyncio.gather(
        _debit_in_own_session(user_id, "debit:test:race-a"),
        _debit_in_own_session(user_id, "debit:test:race-b"),
        return_exceptions=True,
    )

    failures = [result for result in results if isinstance(result, Exception)]
    successes = [result for result in results if not isinstance(result, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientBalanceError)
    assert successes == [Decimal("20.00")]

    async with SessionLocal() as session:
        assert await LedgerService.get_balance(session, user_id=user_id) == Decimal("20.00")
        entry_count = await session.scalar(
            select(func.count(LedgerEntry.id)).where(LedgerEntry.user_id == user_id)
        )
    assert entry_count == 1
