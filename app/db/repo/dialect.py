from __future__ import annotations

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def conflict_insert(session: AsyncSession, table):
    """Return an INSERT construct that supports ``on_conflict_do_nothing``."""
    bind = session.bind
    if bind is not None and bind.dialect.name == "sqlite":
        return sqlite.insert(table)
    return postgresql.insert(table)
