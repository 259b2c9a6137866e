from app.economy.quota.free_messages import FreeMessagePolicy, get_free_message_status
from app.economy.quota.random_source import RandomSource, SeededRandomSource, SystemRandomSource
from app.economy.quota.service import QuotaGate

__all__ = [
    "FreeMessagePolicy",
    "QuotaGate",
    "RandomSource",
    "SeededRandomSource",
    "SystemRandomSource",
    "get_free_message_status",
]
