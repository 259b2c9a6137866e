from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.personas import Persona


class PersonasRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, persona_id: int) -> Persona | None:
        return await session.get(Persona, persona_id)

    @staticmethod
    async def create(session: AsyncSession, *, persona: Persona) -> Persona:
        session.add(persona)
        await session.flush()
        return persona
