"""Structured engine events: quest sets, plans, focus boosts, unlocks and gating."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from threading import RLock
from typing import Any, Callable, Dict, FrozenSet, List

logger = logging.getLogger("skillquest.telemetry")

ENGINE_EVENTS: FrozenSet[str] = frozenset(
    {
        "career_unlocked",
        "class_focus_applied",
        "db_pool_status",
        "evidence_gate_evaluated",
        "quest_set_created",
        "quest_set_reused",
        "skill_score_updated",
        "weekly_plan_created",
    }
)


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)


Listener = Callable[[TelemetryEvent], None]

_listeners: List[Listener] = []
_lock = RLock()


def register_listener(listener: Listener) -> None:
    """Register an in-process listener (tests, audit sinks)."""
    with _lock:
        _listeners.append(listener)


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


def emit_event(name: str, **fields: Any) -> TelemetryEvent:
    """Fan an event out to listeners and log it as a single JSON line.

    Dates, enums (skills, bands, grades) and nested lists are flattened to JSON
    friendly values before listeners see them.
    """
    if name not in ENGINE_EVENTS:
        logger.debug("Emitting unregistered telemetry event %s", name)
    event = TelemetryEvent(name=name, payload={key: _sanitize(value) for key, value in fields.items()})

    with _lock:
        listeners = list(_listeners)

    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    structured = {"event": name, **event.payload}
    logger.info("TELEMETRY %s", json.dumps(structured, default=str))
    return event


def _sanitize(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(_sanitize(key)): _sanitize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_sanitize(item) for item in value]
        return sorted(items, key=str) if isinstance(value, (set, frozenset)) else items
    return value


__all__ = [
    "ENGINE_EVENTS",
    "TelemetryEvent",
    "clear_listeners",
    "emit_event",
    "register_listener",
]
