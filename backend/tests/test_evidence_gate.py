from __future__ import annotations

from datetime import date, datetime

import pytest

from skillquest.config import EngineConfig
from skillquest.evidence import (
    ConfidenceBand,
    TalentSignal,
    activity_streak,
    can_show_gentle_observations,
    can_show_progress_narrative,
    confidence_band,
    diversity_gate_met,
    evaluate_evidence,
    gate_talent_signals,
    generate_talent_signals,
    gentle_observations,
    progress_narrative,
    support_actions,
)
from skillquest.grades import SkillCategory
from skillquest.telemetry import TelemetryEvent, clear_listeners, register_listener


def _signal(signal_id: str, **overrides: object) -> TalentSignal:
    fields: dict[str, object] = {
        "id": signal_id,
        "name": signal_id.title(),
        "min_obs": 5,
        "min_contexts": 2,
        "stability_threshold": 0.6,
        "observed_count": 10,
        "contexts_count": 3,
        "stability_score": 0.8,
        "support_actions": [f"support {signal_id}"],
    }
    fields.update(overrides)
    return TalentSignal(**fields)


@pytest.fixture
def events():
    captured: list[TelemetryEvent] = []
    register_listener(captured.append)
    yield captured
    clear_listeners()


def test_nothing_unlocks_below_the_global_gate() -> None:
    strong_evidence = _signal("pattern", observed_count=100, contexts_count=10, stability_score=1.0)

    result = gate_talent_signals([strong_evidence], 9)

    assert result.unlocked == []
    assert [signal.id for signal in result.locked] == ["pattern"]


def test_confidence_turns_strong_at_twenty_activities() -> None:
    signal = _signal("pattern")

    assert confidence_band(signal, 19) == ConfidenceBand.MODERATE
    assert confidence_band(signal, 20) == ConfidenceBand.STRONG
    assert gate_talent_signals([signal], 19).unlocked[0].confidence == ConfidenceBand.MODERATE
    assert gate_talent_signals([signal], 20).unlocked[0].confidence == ConfidenceBand.STRONG


def test_signals_below_thresholds_stay_emerging_and_locked() -> None:
    thin = _signal("thin", observed_count=4)
    narrow = _signal("narrow", contexts_count=1)
    shaky = _signal("shaky", stability_score=0.59)

    result = gate_talent_signals([thin, narrow, shaky], 30)

    assert result.unlocked == []
    assert {signal.confidence for signal in result.locked} == {ConfidenceBand.EMERGING}


def test_surfaced_signals_are_capped_and_ordered() -> None:
    signals = [_signal(f"s{index}") for index in range(7)]

    unlocked = gate_talent_signals(signals, 25).unlocked

    assert [signal.id for signal in unlocked] == ["s0", "s1", "s2", "s3", "s4"]
    assert gate_talent_signals(signals, 25, EngineConfig(max_surfaced_signals=2)).unlocked[-1].id == "s1"


def test_signals_past_the_cap_are_not_reported_as_locked() -> None:
    signals = [_signal(f"s{index}") for index in range(7)] + [_signal("weak", observed_count=1)]

    result = gate_talent_signals(signals, 25)

    assert len(result.unlocked) == 5
    assert [signal.id for signal in result.locked] == ["weak"]


def test_diversity_gate_needs_types_or_branches() -> None:
    assert diversity_gate_met(3, 0)
    assert diversity_gate_met(1, 4)
    assert not diversity_gate_met(2, 3)


def test_observation_and_narrative_gates() -> None:
    moderate = [_signal("a", confidence=ConfidenceBand.MODERATE)]
    three = moderate + [_signal("b", confidence=ConfidenceBand.STRONG), _signal("c", confidence=ConfidenceBand.MODERATE)]

    assert can_show_gentle_observations(True, moderate)
    assert not can_show_gentle_observations(False, moderate)
    assert not can_show_gentle_observations(True, [_signal("e")])
    assert not can_show_progress_narrative(True, moderate)
    assert can_show_progress_narrative(True, three)


def test_generated_signals_follow_scored_skills() -> None:
    signals = generate_talent_signals(
        4,
        6,
        3,
        [SkillCategory.COGNITIVE_REASONING, "CREATIVITY", SkillCategory.PLANNING],
    )

    by_id = {signal.id: signal for signal in signals}
    assert by_id["pattern-recognition"].observed_count == 10
    assert by_id["creative-problem-solving"].observed_count == 9
    assert by_id["creative-problem-solving"].evidence_summary == "observed across 9 activities in 3 different contexts"
    assert by_id["planning-organization"].observed_count == 3
    assert generate_talent_signals(5, 5, 5, [SkillCategory.MEMORY]) == []


def test_parent_copy_helpers() -> None:
    signals = [
        _signal("pattern-recognition", name="Pattern Recognition", confidence=ConfidenceBand.STRONG),
        _signal("planning-organization", name="Planning & Organization", confidence=ConfidenceBand.EMERGING),
    ]

    observations = gentle_observations(signals)
    narrative = progress_narrative(signals)
    actions = support_actions(signals)

    assert len(observations) == 2
    assert narrative.now == "Current patterns indicate growing confidence in pattern recognition"
    assert [action.mapped_to_signal for action in actions] == ["pattern-recognition", "planning-organization"]
    assert all(action.low_effort for action in actions)


def test_activity_streak() -> None:
    today = date(2026, 3, 10)
    completed = [
        datetime(2026, 3, 9, 18, 0),
        date(2026, 3, 8),
        date(2026, 3, 7),
        date(2026, 3, 5),
    ]

    assert activity_streak(completed, today) == 3
    assert activity_streak([date(2026, 3, 10), date(2026, 3, 10)], today) == 1
    assert activity_streak([date(2026, 3, 7)], today) == 0
    assert activity_streak([], today) == 0


def test_evaluate_evidence_for_new_student(events) -> None:
    result = evaluate_evidence(3, 3, 3, [SkillCategory.COGNITIVE_REASONING], 2, student_id="s1")

    assert result.global_gate_met is False
    assert result.activities_needed == 1
    assert result.unlocked_signals == []
    assert result.show_gentle_observations is False
    assert events[-1].name == "evidence_gate_evaluated"
    assert events[-1].payload["student_id"] == "s1"


def test_evaluate_evidence_for_established_student(events) -> None:
    categories = [
        SkillCategory.COGNITIVE_REASONING,
        SkillCategory.CREATIVITY,
        SkillCategory.PLANNING,
        SkillCategory.MEMORY,
    ]

    result = evaluate_evidence(5, 10, 8, categories, 3, student_id="s2")

    assert result.global_gate_met is True
    assert result.diversity_gate_met is True
    assert result.skill_branches == 4
    assert [signal.id for signal in result.unlocked_signals] == [
        "pattern-recognition",
        "creative-problem-solving",
        "planning-organization",
    ]
    assert all(signal.confidence == ConfidenceBand.STRONG for signal in result.unlocked_signals)
    assert result.show_progress_narrative is True
    assert events[-1].payload["unlocked"] == [
        "pattern-recognition",
        "creative-problem-solving",
        "planning-organization",
    ]
