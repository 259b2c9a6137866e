from app.economy.autotopup import AutoTopupService
from app.economy.entitlements import EntitlementService
from app.economy.ledger import LedgerService
from app.economy.payments import PaymentService
from app.economy.quota import QuotaGate

__all__ = [
    "AutoTopupService",
    "EntitlementService",
    "LedgerService",
    "PaymentService",
    "QuotaGate",
]
