from __future__ import annotations

from decimal import Decimal


def compute_reconciliation_diff(
    *,
    completed_payments_count: int,
    credited_payments_count: int,
    stale_open_payments_count: int,
    expected_credits_total: Decimal,
    credited_total: Decimal,
    payment_type_mismatch_count: int,
) -> int:
    return (
        abs(completed_payments_count - credited_payments_count)
        + max(0, stale_open_payments_count)
        + (1 if expected_credits_total != credited_total else 0)
        + max(0, payment_type_mismatch_count)
    )


def compute_payment_type_mismatch_count(
    *,
    expected_by_type: dict[str, Decimal],
    credited_by_type: dict[str, Decimal],
) -> int:
    payment_types = set(expected_by_type) | set(credited_by_type)
    return sum(
        1
        for payment_type in payment_types
        if expected_by_type.get(payment_type, Decimal("0"))
        != credited_by_type.get(payment_type, Decimal("0"))
    )


def reconciliation_status(diff_count: int) -> str:
    return "OK" if diff_count == 0 else "DIFF"
