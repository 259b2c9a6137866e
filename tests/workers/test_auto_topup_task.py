from app.workers.celery_app import celery_app
from app.workers.tasks import auto_topup


def _summary(**overrides: int) -> dict[str, int]:
    summary = {
        "examined": 0,
        "initiated": 0,
        "above_threshold": 0,
        "in_flight": 0,
        "cooldown": 0,
        "invalid_package": 0,
        "skipped": 0,
        "errors": 0,
    }
    summary.update(overrides)
    return summary


def test_auto_topup_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, batch_size: int | None) -> dict[str, int]:
        return _summary(examined=batch_size or 0, initiated=1)

    monkeypatch.setattr(auto_topup, "run_auto_topup_scan_async", fake_async)

    result = auto_topup.run_auto_topup_scan(batch_size=12)
    assert result["examined"] == 12
    assert result["initiated"] == 1


async def test_auto_topup_scan_alerts_on_errors(monkeypatch) -> None:
    alerts: list[tuple[str, dict[str, int]]] = []

    async def fake_run(now_utc, *, batch_size=None) -> dict[str, int]:
        return _summary(examined=3, initiated=1, errors=2)

    async def fake_alert(*, event: str, payload: dict[str, int]) -> bool:
        alerts.append((event, payload))
        return True

    monkeypatch.setattr(auto_topup, "run_auto_topups", fake_run)
    monkeypatch.setattr(auto_topup, "send_ops_alert", fake_alert)

    result = await auto_topup.run_auto_topup_scan_async()

    assert result["errors"] == 2
    assert alerts == [("auto_topup_errors_detected", result)]


async def test_auto_topup_scan_stays_quiet_without_errors(monkeypatch) -> None:
    alerts: list[str] = []

    async def fake_run(now_utc, *, batch_size=None) -> dict[str, int]:
        return _summary(examined=2, above_threshold=2)

    async def fake_alert(*, event: str, payload: dict[str, int]) -> bool:
        alerts.append(event)
        return True

    monkeypatch.setattr(auto_topup, "run_auto_topups", fake_run)
    monkeypatch.setattr(auto_topup, "send_ops_alert", fake_alert)

    await auto_topup.run_auto_topup_scan_async(batch_size=10)

    assert alerts == []


def test_auto_topup_beat_schedule() -> None:
    entry = celery_app.conf.beat_schedule["auto-topup-scan-every-5-minutes"]
    assert entry["task"] == "app.workers.tasks.auto_topup.run_auto_topup_scan"
    assert entry["schedule"] == 300.0
