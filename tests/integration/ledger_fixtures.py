from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from app.db.models.personas import Persona
from app.db.repo.chats_repo import ChatsRepo
from app.db.repo.personas_repo import PersonasRepo
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal

UTC = timezone.utc


async def _create_user(
    *,
    balance: Decimal | str = "0",
    subscription_status: str = "free",
    subscription_expiry: datetime | None = None,
    role: str = "user",
) -> int:
    async with SessionLocal.begin() as session:
        user = await UsersRepo.create(
            session,
            balance=Decimal(str(balance)),
            subscription_status=subscription_status,
            subscription_expiry=subscription_expiry,
            role=role,
        )
        return user.id


async def _create_persona(
    *,
    name: str = "Mira",
    dominance_level: int = 0,
    lock_message_chance: float = 0.0,
    lock_message_price: Decimal | str = "0.50",
    is_exclusive: bool = False,
) -> int:
    async with SessionLocal.begin() as session:
        persona = await PersonasRepo.create(
            session,
            persona=Persona(
                name=name,
                dominance_level=dominance_level,
                lock_message_chance=lock_message_chance,
                lock_message_price=Decimal(str(lock_message_price)),
                is_exclusive=is_exclusive,
            ),
        )
        return persona.id


async def _create_chat(*, user_id: int, persona_id: int) -> int:
    async with SessionLocal.begin() as session:
        chat = await ChatsRepo.create(
            session,
            user_id=user_id,
            persona_id=persona_id,
            title="Integration chat",
            created_at=datetime.now(UTC),
        )
        return chat.id
