"""Connection pool counters behind ``/healthz/database`` and ``db_pool_status`` events."""

from __future__ import annotations

import time
import weakref
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine

from ..telemetry import emit_event

DEFAULT_TELEMETRY_INTERVAL = 30.0


@dataclass
class PoolTelemetryState:
    interval_seconds: float = DEFAULT_TELEMETRY_INTERVAL
    connects: int = 0
    checkouts: int = 0
    checkins: int = 0
    last_emit: Optional[float] = None

    @property
    def in_use(self) -> int:
        return max(0, self.checkouts - self.checkins)

    def due(self, now: float) -> bool:
        if self.interval_seconds <= 0 or self.last_emit is None:
            return True
        return (now - self.last_emit) >= self.interval_seconds


_STATE_BY_ENGINE: "weakref.WeakKeyDictionary[Engine, PoolTelemetryState]" = weakref.WeakKeyDictionary()


def instrument_engine(engine: Engine, *, interval_seconds: float = DEFAULT_TELEMETRY_INTERVAL) -> None:
    """Count pool connects, checkouts and checkins; emit at most one snapshot per interval."""
    if engine in _STATE_BY_ENGINE:
        return

    state = PoolTelemetryState(interval_seconds=interval_seconds)
    _STATE_BY_ENGINE[engine] = state

    def record(event_name: str) -> None:
        now = time.monotonic()
        if not state.due(now):
            return
        state.last_emit = now
        emit_event("db_pool_status", event=event_name, **get_pool_snapshot(engine))

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        state.connects += 1
        record("connect")

    @event.listens_for(engine, "checkout")
    def _on_checkout(dbapi_connection, connection_record, connection_proxy) -> None:  # type: ignore[no-untyped-def]
        state.checkouts += 1
        record("checkout")

    @event.listens_for(engine, "checkin")
    def _on_checkin(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        state.checkins += 1
        record("checkin")


def get_pool_snapshot(engine: Engine) -> Dict[str, object]:
    state = _STATE_BY_ENGINE.get(engine) or PoolTelemetryState()
    return {
        "backend": engine.url.get_backend_name(),
        "status": _safe_pool_status(engine),
        "connects": state.connects,
        "checkouts": state.checkouts,
        "checkins": state.checkins,
        "in_use": state.in_use,
    }


def _safe_pool_status(engine: Engine) -> str:
    try:
        return engine.pool.status()  # type: ignore[no-untyped-call]
    except Exception as exc:  # pragma: no cover
        return f"unavailable: {exc}"


__all__ = [
    "DEFAULT_TELEMETRY_INTERVAL",
    "get_pool_snapshot",
    "instrument_engine",
]
