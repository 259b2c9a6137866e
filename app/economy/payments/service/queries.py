from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.payments import Payment
from app.db.repo.payments_repo import PaymentsRepo
from app.economy.payments.errors import PaymentNotFoundError


async def get_payment(session: AsyncSession, *, payment_id: UUID) -> Payment:
    payment = await PaymentsRepo.get_by_id(session, payment_id)
    if payment is None:
        raise PaymentNotFoundError
    return payment
