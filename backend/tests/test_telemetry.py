from __future__ import annotations

import logging
from datetime import date

from skillquest.grades import Grade, SkillCategory
from skillquest.telemetry import TelemetryEvent, clear_listeners, emit_event, register_listener


def test_events_are_sanitized_and_fanned_out() -> None:
    captured: list[TelemetryEvent] = []
    register_listener(captured.append)
    try:
        returned = emit_event(
            "class_focus_applied",
            day=date(2026, 3, 4),
            grade=Grade.NINE,
            boosts={SkillCategory.PLANNING: 0.2},
            skills=(SkillCategory.MEMORY, SkillCategory.ATTENTION),
        )
    finally:
        clear_listeners()

    assert captured == [returned]
    assert returned.payload == {
        "day": "2026-03-04",
        "grade": 9,
        "boosts": {"PLANNING": 0.2},
        "skills": ["MEMORY", "ATTENTION"],
    }
    assert returned.emitted_at.tzinfo is not None


def test_failing_listener_does_not_block_others(caplog) -> None:
    captured: list[TelemetryEvent] = []

    def broken(event: TelemetryEvent) -> None:
        raise RuntimeError("boom")

    register_listener(broken)
    register_listener(captured.append)
    try:
        with caplog.at_level(logging.INFO, logger="skillquest.telemetry"):
            emit_event("career_unlocked", career_id="analyst")
    finally:
        clear_listeners()

    assert [event.name for event in captured] == ["career_unlocked"]
    assert "Telemetry listener failed for career_unlocked" in caplog.text
    assert 'TELEMETRY {"event": "career_unlocked", "career_id": "analyst"}' in caplog.text
