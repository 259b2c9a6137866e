from app.db.repo.auto_topup_repo import AutoTopupRepo
from app.db.repo.catalog_versions_repo import CatalogVersionsRepo
from app.db.repo.chats_repo import ChatsRepo
from app.db.repo.free_messages_repo import FreeMessagesRepo
from app.db.repo.ledger_repo import LedgerRepo
from app.db.repo.messages_repo import MessagesRepo
from app.db.repo.payments_repo import PaymentsRepo
from app.db.repo.personas_repo import PersonasRepo
from app.db.repo.reconciliation_runs_repo import ReconciliationRunsRepo
from app.db.repo.subscriptions_repo import SubscriptionsRepo
from app.db.repo.users_repo import UsersRepo

__all__ = [
    "AutoTopupRepo",
    "CatalogVersionsRepo",
    "ChatsRepo",
    "FreeMessagesRepo",
    "LedgerRepo",
    "MessagesRepo",
    "PaymentsRepo",
    "PersonasRepo",
    "ReconciliationRunsRepo",
    "SubscriptionsRepo",
    "UsersRepo",
]
