from __future__ import annotations

from sqlalchemy import create_engine, text

from skillquest.db import monitoring


def _record_events(monkeypatch) -> list[tuple[str, dict[str, object]]]:
    emitted: list[tuple[str, dict[str, object]]] = []

    def record(event_name: str, **payload: object) -> None:
        emitted.append((event_name, payload))

    monkeypatch.setattr(monitoring, "emit_event", record)
    return emitted


def test_every_pool_event_is_reported_without_throttle(monkeypatch) -> None:
    emitted = _record_events(monkeypatch)

    engine = create_engine("sqlite:///:memory:")
    try:
        monitoring.instrument_engine(engine, interval_seconds=0)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    finally:
        engine.dispose()

    names = [payload["event"] for _, payload in emitted]
    assert {event_name for event_name, _ in emitted} == {"db_pool_status"}
    assert names[:2] == ["connect", "checkout"]
    assert emitted[0][1]["connects"] == 1
    assert emitted[0][1]["backend"] == "sqlite"


def test_snapshots_are_throttled_per_interval(monkeypatch, tmp_path) -> None:
    emitted = _record_events(monkeypatch)

    engine = create_engine(f"sqlite:///{tmp_path / 'throttle.sqlite'}")
    try:
        monitoring.instrument_engine(engine, interval_seconds=3600)
        for _ in range(3):
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
    finally:
        engine.dispose()

    assert len(emitted) == 1


def test_pool_snapshot_counts_checkouts(monkeypatch, tmp_path) -> None:
    _record_events(monkeypatch)

    engine = create_engine(f"sqlite:///{tmp_path / 'pool.sqlite'}")
    try:
        assert monitoring.get_pool_snapshot(engine)["checkouts"] == 0
        monitoring.instrument_engine(engine)
        monitoring.instrument_engine(engine)
        for _ in range(2):
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        held = engine.connect()
        snapshot = monitoring.get_pool_snapshot(engine)
        held.close()
        assert snapshot["checkouts"] == 3
        assert snapshot["checkins"] == 2
        assert snapshot["in_use"] == 1
        assert isinstance(snapshot["status"], str)
    finally:
        engine.dispose()
