import pytest
from fastapi.testclient import TestClient

from app.api.routes import health as health_routes
from app.main import app


async def _ok_check() -> dict[str, str]:
    return {"status": "ok"}


def test_health_ok(monkeypatch) -> None:
    monkeypatch.setattr(health_routes, "_check_database", _ok_check)
    monkeypatch.setattr(health_routes, "_check_redis", _ok_check)
    monkeypatch.setattr(health_routes, "_check_celery_worker", _ok_check)

    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "checks": {
            "database": {"status": "ok"},
            "redis": {"status": "ok"},
            "celery": {"status": "ok"},
        },
    }


def test_live_needs_no_dependencies() -> None:
    client = TestClient(app)
    response = client.get("/live")
    assert response.status_code == 200
    assert response.json() == {"status": "live"}


def test_health_degraded_when_celery_has_no_workers(monkeypatch) -> None:
    async def _no_workers() -> dict[str, str]:
        return {"status": "failed", "error": "celery_no_workers"}

    monkeypatch.setattr(health_routes, "_check_database", _ok_check)
    monkeypatch.setattr(health_routes, "_check_redis", _ok_check)
    monkeypatch.setattr(health_routes, "_check_celery_worker", _no_workers)

    client = TestClient(app)
    response = client.get("/health")

    assert response.status_code == 503
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["checks"]["celery"] == {"status": "failed", "error": "celery_no_workers"}


def test_ready_ignores_celery(monkeypatch) -> None:
    async def _must_not_run() -> dict[str, str]:
        raise AssertionError("ready must not check celery")

    monkeypatch.setattr(health_routes, "_check_database", _ok_check)
    monkeypatch.setattr(health_routes, "_check_redis", _ok_check)
    monkeypatch.setattr(health_routes, "_check_celery_worker", _must_not_run)

    client = TestClient(app)
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ready",
        "checks": {
            "database": {"status": "ok"},
            "redis": {"status": "ok"},
        },
    }


def test_ready_returns_503_when_database_down(monkeypatch) -> None:
    async def _db_down() -> dict[str, str]:
        return {"status": "failed", "error": "database_unavailable"}

    monkeypatch.setattr(health_routes, "_check_database", _db_down)
    monkeypatch.setattr(health_routes, "_check_redis", _ok_check)

    client = TestClient(app)
    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


@pytest.mark.asyncio
async def test_database_check_against_test_database() -> None:
    result = await health_routes._check_database()
    assert result == {"status": "ok"}


@pytest.mark.asyncio
async def test_database_check_hides_connection_details(monkeypatch) -> None:
    class _BrokenSession:
        async def __aenter__(self):
            raise RuntimeError("postgresql://ledger:secret@db/ledger")

        async def __aexit__(self, exc_type, exc, tb) -> bool:
            return False

    monkeypatch.setattr(health_routes, "SessionLocal", lambda: _BrokenSession())

    result = await health_routes._check_database()
    assert result == {"status": "failed", "error": "database_unavailable"}


def test_celery_check_hides_broker_url(monkeypatch) -> None:
    class _BrokenControl:
        def inspect(self, timeout: float):
            raise RuntimeError("broker-url=redis://:secret@redis")

    monkeypatch.setattr(health_routes.celery_app, "control", _BrokenControl())

    result = health_routes._check_celery_worker_sync()
    assert result == {"status": "failed", "error": "celery_unavailable"}
