from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.chats import Chat


class ChatsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, chat_id: int) -> Chat | None:
        return await session.get(Chat, chat_id)

    @staticmethod
    async def get_for_user(session: AsyncSession, *, chat_id: int, user_id: int) -> Chat | None:
        stmt = select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def count_by_user(session: AsyncSession, *, user_id: int) -> int:
        stmt = select(func.count(Chat.id)).where(Chat.user_id == user_id)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        user_id: int,
        persona_id: int,
        title: str,
        created_at: datetime,
    ) -> Chat:
        chat = Chat(user_id=user_id, persona_id=persona_id, title=title, created_at=created_at)
        session.add(chat)
        await session.flush()
        return chat
