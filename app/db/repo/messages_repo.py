from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.messages import Message


class MessagesRepo:
    @staticmethod
    async def get_in_chat(session: AsyncSession, *, chat_id: int, message_id: int) -> Message | None:
        stmt = select(Message).where(Message.id == message_id, Message.chat_id == chat_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, message: Message) -> Message:
        session.add(message)
        await session.flush()
        return message

    @staticmethod
    async def mark_unlocked(session: AsyncSession, *, message_id: int, now_utc: datetime) -> bool:
        stmt = (
            update(Message)
            .where(Message.id == message_id, Message.is_locked.is_(True))
            .values(is_locked=False, unlocked_at=now_utc)
            .returning(Message.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
