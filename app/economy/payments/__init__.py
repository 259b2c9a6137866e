from app.economy.payments.service import PaymentService
from app.economy.payments.types import PurchaseInitResult, ReconcileResult

__all__ = ["PaymentService", "PurchaseInitResult", "ReconcileResult"]
