from app.db.models.auto_topup_settings import AutoTopupSettings
from app.db.models.catalog_versions import CatalogVersion
from app.db.models.chats import Chat
from app.db.models.free_message_usage import FreeMessageUsage
from app.db.models.ledger_entries import LedgerEntry
from app.db.models.messages import Message
from app.db.models.payments import Payment
from app.db.models.personas import Persona
from app.db.models.reconciliation_runs import ReconciliationRun
from app.db.models.subscriptions import Subscription
from app.db.models.users import User

__all__ = [
    "AutoTopupSettings",
    "CatalogVersion",
    "Chat",
    "FreeMessageUsage",
    "LedgerEntry",
    "Message",
    "Payment",
    "Persona",
    "ReconciliationRun",
    "Subscription",
    "User",
]
