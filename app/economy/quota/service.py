from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.messages import Message
from app.db.models.payments import Payment
from app.db.repo.chats_repo import ChatsRepo
from app.db.repo.messages_repo import MessagesRepo
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.personas_repo import PersonasRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.catalog.pricing import next_tier
from app.economy.catalog.store import catalog_store
from app.economy.entitlements.service import EntitlementService
from app.economy.ledger.errors import UserNotFoundError
from app.economy.ledger.service import LedgerService, normalize_amount
from app.economy.ledger.types import REASON_MESSAGE_CHARGE, REASON_MESSAGE_UNLOCK, REASON_TIP
from app.economy.quota.errors import (
    AlreadyUnlockedError,
    ChatLimitReachedError,
    ChatNotFoundError,
    MessageNotFoundError,
    PersonaAccessDeniedError,
    PersonaNotFoundError,
)
from app.economy.quota.free_messages import FreeMessagePolicy, consume_free_message
from app.economy.quota.random_source import RandomSource, should_lock
from app.economy.quota.rules import locked_preview, message_cost
from app.economy.quota.types import (
    AssistantMessageResult,
    ChatCreateResult,
    MessageChargeResult,
    TipResult,
    UnlockResult,
)

logger = structlog.get_logger(__name__)

INTERNAL_PROVIDER = "internal"


class QuotaGate:
    @staticmethod
    async def create_chat(
        session: AsyncSession,
        *,
        user_id: int,
        persona_id: int,
        now_utc: datetime,
        title: str | None = None,
    ) -> ChatCreateResult:
        # Serialises concurrent chat creation for the same user.
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise UserNotFoundError

        persona = await PersonasRepo.get_by_id(session, persona_id)
        if persona is None:
            raise PersonaNotFoundError

        catalog = await catalog_store.get(session)
        entitlement = EntitlementService.resolve(catalog, user, now_utc)
        if persona.is_exclusive and not entitlement.exclusive_persona_access:
            raise PersonaAccessDeniedError(
                tier=entitlement.tier,
                next_tier=next_tier(catalog, entitlement.tier),
            )

        allowance = await EntitlementService.can_user_create_chat(
            session,
            user_id=user_id,
            now_utc=now_utc,
        )
        if not allowance.can_create:
            logger.info(
                "chat_limit_reached",
                user_id=user_id,
                tier=allowance.tier,
                current_count=allowance.current_count,
                limit=allowance.limit,
            )
            raise ChatLimitReachedError(
                current_count=allowance.current_count,
                limit=allowance.limit or 0,
                tier=allowance.tier,
                next_tier=next_tier(catalog, allowance.tier),
            )

        chat = await ChatsRepo.create(
            session,
            user_id=user_id,
            persona_id=persona.id,
            title=title or f"Chat with {persona.name}",
            created_at=now_utc,
        )
        logger.info("chat_created", user_id=user_id, chat_id=chat.id, persona_id=persona.id)
        return ChatCreateResult(
            chat_id=chat.id,
            persona_id=persona.id,
            title=chat.title,
            current_count=allowance.current_count + 1,
            limit=allowance.limit,
            tier=allowance.tier,
        )

    @staticmethod
    async def charge_message(
        session: AsyncSession,
        *,
        user_id: int,
        chat_id: int,
        policy: FreeMessagePolicy,
        now_utc: datetime,
        content: str | None = None,
        idempotency_key: str | None = None,
    ) -> MessageChargeResult:
        chat = await ChatsRepo.get_for_user(session, chat_id=chat_id, user_id=user_id)
        if chat is None:
            raise ChatNotFoundError

        used = await consume_free_message(session, user_id=user_id, policy=policy, now_utc=now_utc)
        if used is not None:
            balance = await LedgerService.get_balance(session, user_id=user_id)
            message_id = await QuotaGate._store_user_message(
                session,
                chat_id=chat_id,
                user_id=user_id,
                content=content,
                is_free=True,
                token_cost=Decimal("0"),
                now_utc=now_utc,
            )
            return MessageChargeResult(
                is_free=True,
                token_cost=Decimal("0"),
                balance=balance,
                free_remaining=max(0, policy.limit - used),
                message_id=message_id,
            )

        persona = await PersonasRepo.get_by_id(session, chat.persona_id)
        if persona is None:
            raise PersonaNotFoundError
        entitlement = await EntitlementService.resolve_for_user(
            session,
            user_id=user_id,
            now_utc=now_utc,
        )
        cost = message_cost(
            dominance_level=persona.dominance_level,
            discount_multiplier=entitlement.discount_multiplier,
        )
        result = await LedgerService.debit(
            session,
            user_id=user_id,
            amount=cost,
            reason=REASON_MESSAGE_CHARGE,
            idempotency_key=_message_charge_key(user_id, idempotency_key),
            metadata={"chat_id": chat_id, "persona_id": persona.id, "tier": entitlement.tier},
            now_utc=now_utc,
        )
        message_id = await QuotaGate._store_user_message(
            session,
            chat_id=chat_id,
            user_id=user_id,
            content=content,
            is_free=False,
            token_cost=cost,
            now_utc=now_utc,
        )
        return MessageChargeResult(
            is_free=False,
            token_cost=cost,
            balance=result.balance,
            free_remaining=0,
            message_id=message_id,
        )

    @staticmethod
    async def _store_user_message(
        session: AsyncSession,
        *,
        chat_id: int,
        user_id: int,
        content: str | None,
        is_free: bool,
        token_cost: Decimal,
        now_utc: datetime,
    ) -> int | None:
        if content is None:
            return None
        message = await MessagesRepo.create(
            session,
            message=Message(
                chat_id=chat_id,
                user_id=user_id,
                role="user",
                content=content,
                is_locked=False,
                is_free_message=is_free,
                token_cost=token_cost,
                created_at=now_utc,
            ),
        )
        return message.id

    @staticmethod
    async def record_assistant_message(
        session: AsyncSession,
        *,
        chat_id: int,
        content: str,
        random_source: RandomSource,
        now_utc: datetime,
    ) -> AssistantMessageResult:
        chat = await ChatsRepo.get_by_id(session, chat_id)
        if chat is None:
            raise ChatNotFoundError
        persona = await PersonasRepo.get_by_id(session, chat.persona_id)
        if persona is None:
            raise PersonaNotFoundError

        is_locked = should_lock(random_source, persona.lock_message_chance)
        unlock_price = Decimal(str(persona.lock_message_price)) if is_locked else None
        message = await MessagesRepo.create(
            session,
            message=Message(
                chat_id=chat.id,
                user_id=chat.user_id,
                role="assistant",
                content=content,
                is_locked=is_locked,
                unlock_price=unlock_price,
                is_free_message=False,
                token_cost=Decimal("0"),
                created_at=now_utc,
            ),
        )
        if is_locked:
            logger.info("message_locked", chat_id=chat.id, message_id=message.id)
        return AssistantMessageResult(
            message_id=message.id,
            is_locked=is_locked,
            content=locked_preview(content) if is_locked else content,
            unlock_price=unlock_price,
        )

    @staticmethod
    async def unlock_message(
        session: AsyncSession,
        *,
        user_id: int,
        chat_id: int,
        message_id: int,
        now_utc: datetime,
    ) -> UnlockResult:
        chat = await ChatsRepo.get_for_user(session, chat_id=chat_id, user_id=user_id)
        if chat is None:
            raise ChatNotFoundError
        message = await MessagesRepo.get_in_chat(session, chat_id=chat_id, message_id=message_id)
        if message is None:
            raise MessageNotFoundError
        if not message.is_locked or message.unlock_price is None:
            raise AlreadyUnlockedError

        price = normalize_amount(message.unlock_price)
        if not await MessagesRepo.mark_unlocked(session, message_id=message.id, now_utc=now_utc):
            raise AlreadyUnlockedError

        catalog = await catalog_store.get(session)
        payment = await PaymentsRepo.create(
            session,
            payment=_internal_payment(
                user_id=user_id,
                amount=price,
                currency=catalog.currency,
                payment_type="message_unlock",
                payload={"chat_id": chat_id, "message_id": message.id},
                now_utc=now_utc,
            ),
        )
        result = await LedgerService.debit(
            session,
            user_id=user_id,
            amount=price,
            reason=REASON_MESSAGE_UNLOCK,
            idempotency_key=f"debit:unlock:{message.id}",
            payment_id=payment.id,
            metadata={"chat_id": chat_id, "message_id": message.id},
            now_utc=now_utc,
        )
        logger.info(
            "message_unlocked",
            user_id=user_id,
            chat_id=chat_id,
            message_id=message.id,
            price=str(price),
        )
        return UnlockResult(
            message_id=message.id,
            content=message.content,
            unlock_price=price,
            balance=result.balance,
            payment_id=payment.id,
        )

    @staticmethod
    async def send_tip(
        session: AsyncSession,
        *,
        user_id: int,
        chat_id: int,
        amount: Decimal,
        now_utc: datetime,
        note: str | None = None,
    ) -> TipResult:
        value = normalize_amount(amount)
        chat = await ChatsRepo.get_for_user(session, chat_id=chat_id, user_id=user_id)
        if chat is None:
            raise ChatNotFoundError

        catalog = await catalog_store.get(session)
        payment = await PaymentsRepo.create(
            session,
            payment=_internal_payment(
                user_id=user_id,
                amount=value,
                currency=catalog.currency,
                payment_type="tip",
                payload={"chat_id": chat_id, "persona_id": chat.persona_id, "note": note},
                now_utc=now_utc,
            ),
        )
        result = await LedgerService.debit(
            session,
            user_id=user_id,
            amount=value,
            reason=REASON_TIP,
            idempotency_key=f"debit:tip:{payment.id}",
            payment_id=payment.id,
            metadata={"chat_id": chat_id, "persona_id": chat.persona_id},
            now_utc=now_utc,
        )
        logger.info("tip_sent", user_id=user_id, chat_id=chat_id, amount=str(value))
        return TipResult(payment_id=payment.id, amount=value, balance=result.balance)


def _internal_payment(
    *,
    user_id: int,
    amount: Decimal,
    currency: str,
    payment_type: str,
    payload: dict[str, object],
    now_utc: datetime,
) -> Payment:
    return Payment(
        id=uuid4(),
        user_id=user_id,
        amount=amount,
        currency=currency,
        type=payment_type,
        status="completed",
        source="user",
        provider=INTERNAL_PROVIDER,
        external_payment_id=None,
        tokens_amount=0,
        bonus_tokens=0,
        raw_provider_payload=payload,
        created_at=now_utc,
        updated_at=now_utc,
        completed_at=now_utc,
    )


def _message_charge_key(user_id: int, client_key: str | None) -> str:
    # Client keys are scoped to the caller so they never collide with internal keys.
    if client_key is None:
        return f"debit:message:{uuid4()}"
    return f"debit:message:{user_id}:{client_key}"
