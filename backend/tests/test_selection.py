from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from skillquest.class_focus import (
    ClassFocusProfile,
    FocusWindow,
    apply_boost,
    capped_boost,
    priority_breakdown,
    resolve_active_profile,
)
from skillquest.config import EngineConfig
from skillquest.content import MiniGameQuest, ReflectionQuest
from skillquest.daily_quests import build_daily_quest_set, select_quests_for_assignment
from skillquest.grades import Grade, SkillCategory
from skillquest.selection import (
    compute_weak_signals,
    filter_by_grade,
    rank_candidates,
    select,
    select_candidates,
)
from skillquest.skill_scores import ActivityOutcome

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _quest(quest_id: str, skills: list[SkillCategory], grades: list[int] | None = None) -> MiniGameQuest:
    return MiniGameQuest(
        id=quest_id,
        title=f"Quest {quest_id}",
        description="practice",
        estimated_minutes=5,
        game_id="pattern_forge",
        primary_skills=skills,
        skill_signals=skills,
        grade_applicability=grades if grades is not None else [8, 9, 10],
    )


def test_base_priority_for_reasoning_gap() -> None:
    candidate = _quest("reasoning", [SkillCategory.COGNITIVE_REASONING])
    scores = {SkillCategory.COGNITIVE_REASONING: 40.0}

    ranked = select_candidates([candidate], Grade.EIGHT, scores, 1)
    boosted = select_candidates([candidate], Grade.EIGHT, scores, 1, boosts={"COGNITIVE_REASONING": 0.15})

    assert ranked[0].base_priority == pytest.approx(12.0)
    assert ranked[0].final_priority == pytest.approx(12.0)
    assert boosted[0].final_priority == pytest.approx(13.8)
    assert boosted[0].breakdown is not None
    assert boosted[0].breakdown.class_focus_boost == pytest.approx(0.15)


def test_missing_scores_count_as_neutral() -> None:
    candidate = _quest("creative", [SkillCategory.CREATIVITY])

    ranked = select_candidates([candidate], Grade.EIGHT, {}, 1)

    assert ranked[0].base_priority == pytest.approx(0.15 * 50)


@pytest.mark.parametrize("requested", [-1.0, 0.0, 0.05, 0.2, 0.5, 10.0])
def test_boost_never_leaves_its_bounds(requested: float) -> None:
    for base in (0.0, 3.5, 12.0, 250.0):
        boosted = apply_boost(base, SkillCategory.PLANNING, {"planning": requested})
        assert base <= boosted <= base * 1.20 + 1e-9


def test_breakdown_reports_requested_and_applied_boost() -> None:
    breakdown = priority_breakdown(10.0, "attention", {"ATTENTION": 0.5})

    assert breakdown.requested_boost == 0.5
    assert breakdown.class_focus_boost == 0.20
    assert breakdown.final_priority == pytest.approx(12.0)
    assert capped_boost(SkillCategory.MEMORY, {"ATTENTION": 0.5}) == 0.0


def test_grade_filter_and_universal_fallback() -> None:
    grade_nine_only = _quest("nine", [SkillCategory.PLANNING], [9])
    universal = _quest("all", [SkillCategory.PLANNING], [8, 9, 10])

    assert [item.id for _, item in filter_by_grade([grade_nine_only, universal], Grade.EIGHT)] == ["all"]
    assert filter_by_grade([grade_nine_only], Grade.EIGHT) == []
    assert [item.id for _, item in filter_by_grade([grade_nine_only, universal], Grade.NINE)] == ["nine", "all"]


def test_boost_cannot_bypass_grade_filter() -> None:
    grade_ten_only = _quest("ten", [SkillCategory.PLANNING], [10])
    other = _quest("other", [SkillCategory.MEMORY], [8])

    chosen = select([grade_ten_only, other], Grade.EIGHT, {}, 2, boosts={"PLANNING": 0.2})

    assert [quest.id for quest in chosen] == ["other"]


def test_ties_keep_original_order() -> None:
    candidates = [_quest(str(index), [SkillCategory.MEMORY]) for index in range(5)]

    ranked = rank_candidates(candidates, Grade.NINE, {})

    assert [item.candidate.id for item in ranked] == ["0", "1", "2", "3", "4"]


def test_selection_is_reproducible() -> None:
    candidates = [
        _quest("a", [SkillCategory.MEMORY]),
        _quest("b", [SkillCategory.COGNITIVE_REASONING]),
        _quest("c", [SkillCategory.PLANNING, SkillCategory.ATTENTION]),
    ]
    scores = {SkillCategory.MEMORY: 20.0, SkillCategory.PLANNING: 70.0}

    first = [quest.id for quest in select(candidates, Grade.NINE, scores, 2)]
    second = [quest.id for quest in select(candidates, Grade.NINE, scores, 2)]

    assert first == second
    assert len(first) == 2


def test_weak_signals_are_recency_weighted() -> None:
    outcomes = [
        ActivityOutcome(skill_tags=[SkillCategory.MEMORY], accuracy=0.4, completed_at=NOW - timedelta(days=2)),
        ActivityOutcome(skill_tags=[SkillCategory.MEMORY], accuracy=60, completed_at=NOW - timedelta(days=10)),
        ActivityOutcome(skill_tags=[SkillCategory.PLANNING], accuracy=0.0, completed_at=NOW - timedelta(days=20)),
        ActivityOutcome(skill_tags=[], accuracy=0.0, completed_at=NOW - timedelta(days=1)),
    ]

    signals = compute_weak_signals(outcomes, NOW)

    assert signals[SkillCategory.MEMORY] == pytest.approx(0.6 * 1.5 + 0.4 * 1.0)
    assert SkillCategory.PLANNING not in signals


def test_weak_signal_term_is_a_minor_nudge() -> None:
    memory = _quest("memory", [SkillCategory.MEMORY])
    reasoning = _quest("reasoning", [SkillCategory.COGNITIVE_REASONING])
    signals = {SkillCategory.MEMORY: 2.0}

    ranked = rank_candidates([reasoning, memory], Grade.EIGHT, {}, weak_signals=signals)

    by_id = {item.candidate.id: item for item in ranked}
    assert by_id["memory"].weak_signal_term == pytest.approx(0.6)
    assert ranked[0].candidate.id == "reasoning"


def test_weak_signal_constants_are_configurable() -> None:
    outcome = ActivityOutcome(skill_tags=[SkillCategory.MEMORY], accuracy=0.0, completed_at=NOW - timedelta(days=1))
    config = EngineConfig(weak_signal_recent_weight=3.0)

    assert compute_weak_signals([outcome], NOW, config)[SkillCategory.MEMORY] == pytest.approx(3.0)


def test_debug_logging_of_boost_breakdowns(caplog: pytest.LogCaptureFixture) -> None:
    candidates = [_quest("a", [SkillCategory.PLANNING]), _quest("b", [SkillCategory.MEMORY])]
    config = EngineConfig(debug_class_focus=True)

    with caplog.at_level(logging.INFO, logger="skillquest.class_focus"):
        rank_candidates(candidates, Grade.EIGHT, {}, boosts={"PLANNING": 0.1}, config=config)

    assert any("Class focus prioritization" in record.getMessage() for record in caplog.records)


def test_active_profile_resolution() -> None:
    older = ClassFocusProfile(
        id="older",
        tenant_id="t1",
        teacher_id="teacher",
        grade=8,
        priority_boosts={"MEMORY": 0.1},
        updated_at=NOW - timedelta(days=3),
    )
    newer = older.model_copy(update={"id": "newer", "updated_at": NOW - timedelta(days=1)})
    inactive = older.model_copy(update={"id": "inactive", "is_active": False, "updated_at": NOW})

    assert resolve_active_profile([older, newer, inactive], "t1", "teacher", 8, NOW).id == "newer"
    assert resolve_active_profile([older], "t1", "teacher", 9, NOW) is None
    assert resolve_active_profile([older], "t2", "teacher", 8, NOW) is None


def test_expired_profile_is_inert() -> None:
    expired = ClassFocusProfile(
        id="expired",
        tenant_id="t1",
        teacher_id="teacher",
        priority_boosts={"MEMORY": 0.1},
        focus_window=FocusWindow(start=NOW - timedelta(days=14), end=NOW - timedelta(days=1)),
        updated_at=NOW - timedelta(days=2),
    )

    assert resolve_active_profile([expired], "t1", "teacher", None, NOW) is None


def test_daily_quest_set_picks_three_from_the_pool() -> None:
    scores = {skill: 90.0 for skill in SkillCategory}
    scores[SkillCategory.METACOGNITION] = 0.0

    quests = build_daily_quest_set("student-1", date(2026, 3, 2), 8, scores, now=NOW)
    again = build_daily_quest_set("student-1", date(2026, 3, 2), 8, scores, now=NOW)

    assert len(quests) == 3
    assert [quest.id for quest in quests] == [quest.id for quest in again]
    assert isinstance(quests[0], ReflectionQuest)
    assert quests[0].id == "quest-student-1-2026-03-02-2"
    assert quests[2].id == "quest-student-1-2026-03-02-1"


def test_assignment_selection_with_filters_and_focus() -> None:
    profile = ClassFocusProfile(
        id="focus",
        tenant_id="t1",
        teacher_id="teacher",
        priority_boosts={"PLANNING": 0.2},
    )

    ranked = select_quests_for_assignment(
        "class",
        8,
        4,
        {},
        day=date(2026, 3, 2),
        quest_types=["mini_game"],
        grade_scope=10,
        class_focus=profile,
    )

    assert len(ranked) == 4
    assert all(item.candidate.type == "mini_game" for item in ranked)
    assert all(item.final_priority >= item.base_priority for item in ranked)
    priorities = [item.final_priority for item in ranked]
    assert priorities == sorted(priorities, reverse=True)
