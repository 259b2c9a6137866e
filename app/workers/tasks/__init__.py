from app.workers.tasks.auto_topup import run_auto_topup_scan
from app.workers.tasks.payments_reliability import (
    expire_stale_pending,
    expire_subscriptions,
    poll_open_payments,
    run_payments_reconciliation,
)

__all__ = [
    "expire_stale_pending",
    "expire_subscriptions",
    "poll_open_payments",
    "run_auto_topup_scan",
    "run_payments_reconciliation",
]
