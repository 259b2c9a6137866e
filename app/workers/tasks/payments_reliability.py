from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import structlog
from celery.schedules import crontab

from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.reconciliation_runs_repo import ReconciliationRunsRepo
from app.db.session import SessionLocal
from app.economy.payments.service import PaymentService
from app.services.alerts import send_ops_alert
from app.services.payment_sync import sync_payment_with_provider
from app.services.payments_reliability import (
    compute_payment_type_mismatch_count,
    compute_reconciliation_diff,
    reconciliation_status,
)
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)


async def poll_open_payments_async(*, batch_size: int = 100, min_age_minutes: int = 2) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    cutoff = now_utc - timedelta(minutes=min_age_minutes)

    async with SessionLocal() as session:
        candidates = await PaymentsRepo.list_open_older_than(
            session,
            older_than_utc=cutoff,
            limit=batch_size,
        )
        payment_ids = [payment.id for payment in candidates]

    summary: dict[str, int] = {
        "examined": len(payment_ids),
        "credited": 0,
        "unchanged": 0,
        "errors": 0,
    }
    for payment_id in payment_ids:
        try:
            result = await sync_payment_with_provider(payment_id, source="poll")
        except Exception:
            summary["errors"] += 1
            logger.exception("open_payment_poll_error", payment_id=str(payment_id))
            continue

        if result.credited:
            summary["credited"] += 1
        else:
            summary["unchanged"] += 1

    if summary["errors"] > 0:
        await send_ops_alert(event="payments_poll_errors_detected", payload=summary)

    logger.info("open_payments_poll_finished", **summary)
    return summary


async def expire_stale_pending_async(*, stale_minutes: int = 60) -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        failed_payments = await PaymentsRepo.fail_stale_pending(
            session,
            older_than_utc=now_utc - timedelta(minutes=stale_minutes),
            now_utc=now_utc,
        )

    result = {"failed_payments": failed_payments}
    logger.info("stale_pending_payments_expiry_finished", **result)
    return result


async def expire_subscriptions_async() -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        expired = await PaymentService.expire_subscriptions(session, now_utc=now_utc)

    result = {"expired_subscriptions": expired}
    logger.info("subscriptions_expiry_finished", **result)
    return result


async def run_payments_reconciliation_async(*, stale_minutes: int = 60) -> dict[str, int | str]:
    started_at = datetime.now(timezone.utc)
    stale_cutoff = started_at - timedelta(minutes=stale_minutes)

    async with SessionLocal.begin() as session:
        completed_payments_count = await PaymentsRepo.count_completed_credit_bearing(session)
        credited_payments_count = await LedgerRepo.count_distinct_payment_credits(session)
        expected_by_type = await PaymentsRepo.sum_expected_credits_by_type(session)
        credited_by_type = await LedgerRepo.sum_payment_credits_by_type(session)
        stale_open_payments_count = await PaymentsRepo.count_open_older_than(
            session,
            older_than_utc=stale_cutoff,
        )
        expected_credits_total = sum(expected_by_type.values(), Decimal("0"))
        credited_total = sum(credited_by_type.values(), Decimal("0"))
        payment_type_mismatch_count = compute_payment_type_mismatch_count(
            expected_by_type=expected_by_type,
            credited_by_type=credited_by_type,
        )
        diff_count = compute_reconciliation_diff(
            completed_payments_count=completed_payments_count,
            credited_payments_count=credited_payments_count,
            stale_open_payments_count=stale_open_payments_count,
            expected_credits_total=expected_credits_total,
            credited_total=credited_total,
            payment_type_mismatch_count=payment_type_mismatch_count,
        )
        status = reconciliation_status(diff_count)

        await ReconciliationRunsRepo.create(
            session,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            status=status,
            diff_count=diff_count,
            completed_payments_count=completed_payments_count,
            credited_payments_count=credited_payments_count,
        )

    result: dict[str, int | str] = {
        "completed_payments_count": completed_payments_count,
        "credited_payments_count": credited_payments_count,
        "stale_open_payments_count": stale_open_payments_count,
        "expected_credits_total": str(expected_credits_total),
        "credited_total": str(credited_total),
        "payment_type_mismatch_count": payment_type_mismatch_count,
        "diff_count": diff_count,
        "status": status,
    }
    if diff_count > 0:
        await send_ops_alert(
            event="payments_reconciliation_diff_detected",
            payload=result,
        )
        logger.warning("payments_reconciliation_diff_detected", **result)
    else:
        logger.info("payments_reconciliation_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.payments_reliability.poll_open_payments")
def poll_open_payments(batch_size: int = 100, min_age_minutes: int = 2) -> dict[str, int]:
    return run_async_job(
        poll_open_payments_async(
            batch_size=batch_size,
            min_age_minutes=min_age_minutes,
        ),
        job_name="poll_open_payments",
    )


@celery_app.task(name="app.workers.tasks.payments_reliability.expire_stale_pending")
def expire_stale_pending(stale_minutes: int = 60) -> dict[str, int]:
    return run_async_job(
        expire_stale_pending_async(stale_minutes=stale_minutes),
        job_name="expire_stale_pending",
    )


@celery_app.task(name="app.workers.tasks.payments_reliability.expire_subscriptions")
def expire_subscriptions() -> dict[str, int]:
    return run_async_job(expire_subscriptions_async(), job_name="expire_subscriptions")


@celery_app.task(name="app.workers.tasks.payments_reliability.run_payments_reconciliation")
def run_payments_reconciliation(stale_minutes: int = 60) -> dict[str, int | str]:
    return run_async_job(
        run_payments_reconciliation_async(stale_minutes=stale_minutes),
        job_name="payments_reconciliation",
    )


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "poll-open-payments-every-2-minutes": {
            "task": "app.workers.tasks.payments_reliability.poll_open_payments",
            "schedule": 120.0,
            "options": {"queue": "q_high"},
        },
        "expire-stale-pending-every-10-minutes": {
            "task": "app.workers.tasks.payments_reliability.expire_stale_pending",
            "schedule": 600.0,
            "options": {"queue": "q_normal"},
        },
        "expire-subscriptions-every-15-minutes": {
            "task": "app.workers.tasks.payments_reliability.expire_subscriptions",
            "schedule": 900.0,
            "options": {"queue": "q_normal"},
        },
        "payments-reconciliation-every-15-minutes": {
            "task": "app.workers.tasks.payments_reliability.run_payments_reconciliation",
            "schedule": 900.0,
            "options": {"queue": "q_normal"},
        },
        "payments-reconciliation-daily-0330-utc": {
            "task": "app.workers.tasks.payments_reliability.run_payments_reconciliation",
            "schedule": crontab(hour=3, minute=30),
            "options": {"queue": "q_normal"},
        },
    }
)
