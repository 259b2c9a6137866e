from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.ledger_entries import LedgerEntry
from app.db.repo.ledger_repo import LedgerRepo
from app.economy.ledger.errors import (
    IdempotencyKeyConflictError,
    InsufficientBalanceError,
    InvalidAmountError,
    UserNotFoundError,
)
from app.economy.ledger.types import LedgerResult

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def normalize_amount(amount: Decimal | int | str) -> Decimal:
    try:
        value = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidAmountError(str(amount)) from exc
    if value <= 0:
        raise InvalidAmountError(str(amount))
    return value


class LedgerService:
    @staticmethod
    async def get_balance(session: AsyncSession, *, user_id: int) -> Decimal:
        balance = await LedgerRepo.get_balance(session, user_id)
        if balance is None:
            raise UserNotFoundError
        return Decimal(str(balance))

    @staticmethod
    async def _replay(
        session: AsyncSession,
        *,
        user_id: int,
        direction: str,
        amount: Decimal,
        idempotency_key: str,
    ) -> LedgerResult | None:
        existing = await LedgerRepo.get_by_idempotency_key(session, idempotency_key)
        if existing is None:
            return None
        # A key only replays the exact mutation it was first used for.
        if (
            existing.user_id != user_id
            or existing.direction != direction
            or Decimal(str(existing.amount)) != amount
        ):
            logger.warning(
                "ledger_idempotency_key_conflict",
                user_id=user_id,
                direction=direction,
                amount=str(amount),
                stored_user_id=existing.user_id,
                stored_direction=existing.direction,
            )
            raise IdempotencyKeyConflictError(idempotency_key)
        return LedgerResult(
            balance=await LedgerService.get_balance(session, user_id=user_id),
            idempotent_replay=True,
        )

    @staticmethod
    async def credit(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal | int,
        reason: str,
        idempotency_key: str,
        now_utc: datetime,
        payment_id: UUID | None = None,
        subscription_id: UUID | None = None,
        metadata: dict[str, object] | None = None,
    ) -> LedgerResult:
        value = normalize_amount(amount)
        replay = await LedgerService._replay(
            session,
            user_id=user_id,
            direction="CREDIT",
            amount=value,
            idempotency_key=idempotency_key,
        )
        if replay is not None:
            return replay

        balance_after = await LedgerRepo.increment_balance(session, user_id=user_id, amount=value)
        if balance_after is None:
            raise UserNotFoundError

        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=user_id,
                payment_id=payment_id,
                subscription_id=subscription_id,
                direction="CREDIT",
                amount=value,
                balance_after=balance_after,
                reason=reason,
                idempotency_key=idempotency_key,
                metadata_=metadata or {},
                created_at=now_utc,
            ),
        )
        logger.info(
            "ledger_credited",
            user_id=user_id,
            amount=str(value),
            reason=reason,
            balance_after=str(balance_after),
        )
        return LedgerResult(balance=Decimal(str(balance_after)), idempotent_replay=False)

    @staticmethod
    async def debit(
        session: AsyncSession,
        *,
        user_id: int,
        amount: Decimal | int,
        reason: str,
        idempotency_key: str,
        now_utc: datetime,
        payment_id: UUID | None = None,
        metadata: dict[str, object] | None = None,
    ) -> LedgerResult:
        value = normalize_amount(amount)
        replay = await LedgerService._replay(
            session,
            user_id=user_id,
            direction="DEBIT",
            amount=value,
            idempotency_key=idempotency_key,
        )
        if replay is not None:
            return replay

        balance_after = await LedgerRepo.decrement_balance_if_sufficient(
            session,
            user_id=user_id,
            amount=value,
        )
        if balance_after is None:
            balance = await LedgerService.get_balance(session, user_id=user_id)
            raise InsufficientBalanceError(balance=balance, required=value)

        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=user_id,
                payment_id=payment_id,
                direction="DEBIT",
                amount=value,
                balance_after=balance_after,
                reason=reason,
                idempotency_key=idempotency_key,
                metadata_=metadata or {},
                created_at=now_utc,
            ),
        )
        logger.info(
            "ledger_debited",
            user_id=user_id,
            amount=str(value),
            reason=reason,
            balance_after=str(balance_after),
        )
        return LedgerResult(balance=Decimal(str(balance_after)), idempotent_replay=False)

    @staticmethod
    async def list_transactions(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 50,
    ) -> list[LedgerEntry]:
        await LedgerService.get_balance(session, user_id=user_id)
        return await LedgerRepo.list_for_user(session, user_id=user_id, limit=limit)
