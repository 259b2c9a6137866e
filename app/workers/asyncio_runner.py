from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from app.db.session import dispose_engine
from app.economy.catalog.store import catalog_store

T = TypeVar("T")


async def _run_job(awaitable: Awaitable[T], *, job_name: str | None) -> T:
    # Pooled connections and the cached catalog belong to the previous event loop's job.
    await dispose_engine()
    catalog_store.invalidate()
    structlog.contextvars.clear_contextvars()
    if job_name is not None:
        structlog.contextvars.bind_contextvars(job=job_name)
    try:
        return await awaitable
    finally:
        structlog.contextvars.clear_contextvars()
        await dispose_engine()


def run_async_job(awaitable: Awaitable[T], *, job_name: str | None = None) -> T:
    return asyncio.run(_run_job(awaitable, job_name=job_name))
