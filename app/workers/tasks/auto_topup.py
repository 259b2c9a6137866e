from __future__ import annotations

from datetime import datetime, timezone

import structlog

from app.economy.autotopup.runner import run_auto_topups
from app.services.alerts import send_ops_alert
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def run_auto_topup_scan_async(*, batch_size: int | None = None) -> dict[str, int]:
    summary = await run_auto_topups(datetime.now(timezone.utc), batch_size=batch_size)
    if summary["errors"] > 0:
        await send_ops_alert(event="auto_topup_errors_detected", payload=summary)
    return summary


@celery_app.task(name="app.workers.tasks.auto_topup.run_auto_topup_scan")
def run_auto_topup_scan(batch_size: int | None = None) -> dict[str, int]:
    return run_async_job(
        run_auto_topup_scan_async(batch_size=batch_size),
        job_name="auto_topup_scan",
    )


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "auto-topup-scan-every-5-minutes": {
            "task": "app.workers.tasks.auto_topup.run_auto_topup_scan",
            "schedule": 300.0,
            "options": {"queue": "q_normal"},
        },
    }
)
