from __future__ import annotations

from decimal import Decimal


class LedgerError(Exception):
    pass


class UserNotFoundError(LedgerError):
    pass


class InvalidAmountError(LedgerError):
    pass


class InsufficientBalanceError(LedgerError):
    def __init__(self, *, balance: Decimal, required: Decimal) -> None:
        super().__init__(f"balance {balance} is below the required {required}")
        self.balance = balance
        self.required = required


class IdempotencyKeyConflictError(LedgerError):
    pass
