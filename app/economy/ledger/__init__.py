from app.economy.ledger.service import LedgerService, normalize_amount
from app.economy.ledger.types import LedgerResult

__all__ = ["LedgerResult", "LedgerService", "normalize_amount"]
