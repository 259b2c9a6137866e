from app.economy.entitlements.rules import can_create_chat, resolve_entitlement
from app.economy.entitlements.service import EntitlementService
from app.economy.entitlements.types import ChatAllowance, Entitlement, SubscriptionView

__all__ = [
    "ChatAllowance",
    "Entitlement",
    "EntitlementService",
    "SubscriptionView",
    "can_create_chat",
    "resolve_entitlement",
]
