from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.payments import Payment
from app.db.repo.payments_repo import PaymentsRepo
from app.economy.ledger.service import LedgerService
from app.economy.ledger.types import REASON_PURCHASE_CREDIT, REASON_SUBSCRIPTION_BONUS
from app.economy.payments.errors import PaymentAmountMismatchError, PaymentNotFoundError
from app.economy.payments.state import PAYMENT_STATUSES, is_allowed_transition
from app.economy.payments.types import ReconcileResult

from .activation import _activate_subscription
from .constants import PURCHASE_CREDIT_KEY, SUBSCRIPTION_BONUS_KEY

logger = structlog.get_logger(__name__)


def _check_reported_amount(
    payment: Payment,
    *,
    amount: Decimal | None,
    currency: str | None,
) -> None:
    expected_amount = Decimal(str(payment.amount))
    amount_short = amount is not None and Decimal(str(amount)) < expected_amount
    currency_differs = currency is not None and currency.upper() != payment.currency.upper()
    if amount_short or currency_differs:
        raise PaymentAmountMismatchError(
            expected_amount=expected_amount,
            expected_currency=payment.currency,
            reported_amount=amount,
            reported_currency=currency,
        )


async def _apply_completion(
    session: AsyncSession,
    *,
    payment: Payment,
    now_utc: datetime,
) -> bool:
    if payment.type == "credit_purchase":
        total_tokens = payment.tokens_amount + payment.bonus_tokens
        if total_tokens <= 0:
            return False
        result = await LedgerService.credit(
            session,
            user_id=payment.user_id,
            amount=total_tokens,
            reason=REASON_PURCHASE_CREDIT,
            idempotency_key=PURCHASE_CREDIT_KEY.format(payment_id=payment.id),
            payment_id=payment.id,
            metadata={"package_id": payment.package_id, "source": payment.source},
            now_utc=now_utc,
        )
        return not result.idempotent_replay

    if payment.type == "subscription":
        subscription = await _activate_subscription(session, payment=payment, now_utc=now_utc)
        if subscription.bonus_tokens_granted <= 0:
            return False
        result = await LedgerService.credit(
            session,
            user_id=payment.user_id,
            amount=subscription.bonus_tokens_granted,
            reason=REASON_SUBSCRIPTION_BONUS,
            idempotency_key=SUBSCRIPTION_BONUS_KEY.format(subscription_id=subscription.id),
            payment_id=payment.id,
            subscription_id=subscription.id,
            metadata={"tier": subscription.tier},
            now_utc=now_utc,
        )
        return not result.idempotent_replay

    return False


async def reconcile(
    session: AsyncSession,
    *,
    external_payment_id: str,
    new_status: str,
    source: str,
    now_utc: datetime,
    amount: Decimal | None = None,
    currency: str | None = None,
    raw_payload: dict[str, object] | None = None,
) -> ReconcileResult:
    if new_status not in PAYMENT_STATUSES:
        raise ValueError(f"unsupported payment status {new_status}")

    payment = await PaymentsRepo.get_by_external_id_for_update(session, external_payment_id)
    if payment is None:
        raise PaymentNotFoundError

    previous_status = payment.status
    if previous_status == "completed" or not is_allowed_transition(previous_status, new_status):
        logger.info(
            "payment_reconcile_noop",
            payment_id=str(payment.id),
            current_status=previous_status,
            reported_status=new_status,
            source=source,
        )
        return ReconcileResult(
            payment_id=payment.id,
            status=previous_status,
            credited=False,
            idempotent_replay=True,
        )

    if new_status == "completed":
        _check_reported_amount(payment, amount=amount, currency=currency)

    transitioned = await PaymentsRepo.transition_status(
        session,
        payment_id=payment.id,
        from_status=previous_status,
        to_status=new_status,
        now_utc=now_utc,
        raw_provider_payload=raw_payload,
    )
    if not transitioned:
        await session.refresh(payment)
        return ReconcileResult(
            payment_id=payment.id,
            status=payment.status,
            credited=False,
            idempotent_replay=True,
        )

    credited = False
    if new_status == "completed":
        credited = await _apply_completion(session, payment=payment, now_utc=now_utc)

    logger.info(
        "payment_reconciled",
        payment_id=str(payment.id),
        user_id=payment.user_id,
        payment_type=payment.type,
        previous_status=previous_status,
        status=new_status,
        credited=credited,
        source=source,
    )
    return ReconcileResult(
        payment_id=payment.id,
        status=new_status,
        credited=credited,
        idempotent_replay=False,
    )
