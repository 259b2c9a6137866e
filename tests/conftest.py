from __future__ import annotations

import os
import tempfile

import pytest
from sqlalchemy import create_engine

_DB_DIR = tempfile.mkdtemp(prefix="token-ledger-tests-")
_DB_PATH = os.path.join(_DB_DIR, "ledger.db")

# Settings are read on first import of the app, so the environment goes first.
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["PAYMENT_PROVIDER_MODE"] = "mock"
os.environ["PAYMENT_WEBHOOK_SECRET"] = ""
os.environ["OPS_ALERT_WEBHOOK_URL"] = ""
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("INTERNAL_API_TOKEN", "test-internal-token")
os.environ.setdefault("FREE_MESSAGE_LIMIT", "10")
os.environ.setdefault("FREE_MESSAGE_POLICY", "lifetime")

import app.db.models  # noqa: E402,F401
from app.db.models.base import Base  # noqa: E402
from app.economy.catalog.store import catalog_store  # noqa: E402
from app.economy.payments.providers import reset_payment_providers  # noqa: E402


@pytest.fixture(autouse=True)
def reset_database() -> None:
    sync_engine = create_engine(f"sqlite:///{_DB_PATH}")
    try:
        Base.metadata.drop_all(sync_engine)
        Base.metadata.create_all(sync_engine)
    finally:
        sync_engine.dispose()

    catalog_store.invalidate()
    reset_payment_providers()
    yield
    catalog_store.invalidate()
    reset_payment_providers()
