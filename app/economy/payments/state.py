from __future__ import annotations

PAYMENT_STATUSES = ("pending", "processing", "completed", "failed")

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "completed", "failed"}),
    "processing": frozenset({"completed", "failed"}),
    # A provider may resolve a charge after it was reported as failed.
    "failed": frozenset({"completed"}),
    "completed": frozenset(),
}


def is_allowed_transition(from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())
