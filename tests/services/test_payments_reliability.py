from decimal import Decimal

from app.services.payments_reliability import (
    compute_payment_type_mismatch_count,
    compute_reconciliation_diff,
    reconciliation_status,
)


def test_compute_reconciliation_diff_includes_stale_open_payments() -> None:
    diff = compute_reconciliation_diff(
        completed_payments_count=12,
        credited_payments_count=10,
        stale_open_payments_count=3,
        expected_credits_total=Decimal("1200"),
        credited_total=Decimal("1200"),
        payment_type_mismatch_count=0,
    )
    assert diff == 5


def test_compute_reconciliation_diff_includes_total_and_type_mismatches() -> None:
    diff = compute_reconciliation_diff(
        completed_payments_count=10,
        credited_payments_count=10,
        stale_open_payments_count=0,
        expected_credits_total=Decimal("1000"),
        credited_total=Decimal("990"),
        payment_type_mismatch_count=2,
    )
    assert diff == 3


def test_compute_reconciliation_diff_clamps_negative_counts() -> None:
    diff = compute_reconciliation_diff(
        completed_payments_count=10,
        credited_payments_count=10,
        stale_open_payments_count=-1,
        expected_credits_total=Decimal("100"),
        credited_total=Decimal("100"),
        payment_type_mismatch_count=-4,
    )
    assert diff == 0


def test_payment_type_mismatch_counts_each_differing_type() -> None:
    mismatches = compute_payment_type_mismatch_count(
        expected_by_type={"credit_purchase": Decimal("330"), "subscription": Decimal("1000")},
        credited_by_type={"credit_purchase": Decimal("330")},
    )
    assert mismatches == 1


def test_reconciliation_status() -> None:
    assert reconciliation_status(0) == "OK"
    assert reconciliation_status(2) == "DIFF"
