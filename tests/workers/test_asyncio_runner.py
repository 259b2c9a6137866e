from __future__ import annotations

import pytest
import structlog

from app.economy.catalog.defaults import build_default_catalog
from app.economy.catalog.store import catalog_store
from app.workers import asyncio_runner


def test_run_async_job_binds_job_name_and_resets_catalog_cache() -> None:
    catalog_store._cached = build_default_catalog()
    seen: dict[str, object] = {}

    async def job() -> str:
        seen["context"] = structlog.contextvars.get_contextvars()
        seen["cached"] = catalog_store._cached
        return "done"

    assert asyncio_runner.run_async_job(job(), job_name="auto_topup_scan") == "done"
    assert seen["context"] == {"job": "auto_topup_scan"}
    assert seen["cached"] is None


def test_run_async_job_clears_context_after_failure() -> None:
    async def job() -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio_runner.run_async_job(job(), job_name="expire_subscriptions")
    assert structlog.contextvars.get_contextvars() == {}
