from __future__ import annotations

from datetime import datetime, timezone

import pytest

from skillquest.config import EngineConfig
from skillquest.content import QuestScoreSummary, summarize_choice, summarize_reflection
from skillquest.grades import SkillCategory, SkillLevel, SkillTrend
from skillquest.insights import coaching_insight, quest_insight
from skillquest.levels import LEVELS, activity_xp, current_level, leveled_up, xp_progress
from skillquest.skill_scores import (
    SkillScore,
    apply_activity_outcome,
    apply_quest_outcome,
    normalize_accuracy,
    score_map,
    summary_accuracy,
)

NOW = datetime(2026, 3, 4, 9, 30, tzinfo=timezone.utc)


def test_first_outcome_starts_from_neutral() -> None:
    score = apply_activity_outcome(None, SkillCategory.MEMORY, 0.75, "Explorer Quest: Visual Vault", NOW)

    assert score.category == SkillCategory.MEMORY
    assert score.score == 65
    assert score.level == SkillLevel.PROFICIENT
    assert score.trend == SkillTrend.IMPROVING
    assert score.evidence == ["Explorer Quest: Visual Vault"]
    assert score.history[0].date == NOW


def test_outcomes_append_evidence_and_clamp() -> None:
    existing = SkillScore(
        category=SkillCategory.PLANNING,
        score=95,
        level=SkillLevel.ADVANCED,
        evidence=["earlier"],
    )

    updated = apply_activity_outcome(existing, SkillCategory.PLANNING, 1.0, "later", NOW)
    unchanged = apply_activity_outcome(updated, SkillCategory.PLANNING, 0.0, "again", NOW)

    assert updated.score == 100
    assert updated.evidence == ["earlier", "later"]
    assert updated.trend == SkillTrend.IMPROVING
    assert unchanged.score == 100
    assert unchanged.trend == SkillTrend.STABLE
    assert len(unchanged.history) == 2


def test_delta_rounds_half_up_and_is_configurable() -> None:
    assert apply_activity_outcome(None, SkillCategory.MEMORY, 0.025, "e", NOW).score == 51
    config = EngineConfig(skill_score_max_delta=10, neutral_skill_score=40)
    assert apply_activity_outcome(None, SkillCategory.MEMORY, 1.0, "e", NOW, config=config).score == 50


def test_accuracy_normalization() -> None:
    assert normalize_accuracy(75) == pytest.approx(0.75)
    assert normalize_accuracy(0.4) == pytest.approx(0.4)
    assert normalize_accuracy(None) == 0.5
    assert normalize_accuracy(250) == 1.0
    assert summary_accuracy(QuestScoreSummary(accuracy=80)) == pytest.approx(0.8)
    assert summary_accuracy(summarize_reflection("z" * 60)) == pytest.approx(0.6)
    assert summary_accuracy(summarize_choice(1)) == 0.5


def test_one_percent_summary_accuracy_is_not_a_full_fraction() -> None:
    summary = QuestScoreSummary(accuracy=1, normalized_score=1)

    assert summary_accuracy(summary) == pytest.approx(0.01)
    assert summary_accuracy(QuestScoreSummary(response_quality=1)) == pytest.approx(0.01)
    updated = apply_quest_outcome({}, [SkillCategory.MEMORY], "Visual Vault", summary, NOW)
    assert updated[SkillCategory.MEMORY].score == 50


def test_quest_outcome_updates_each_targeted_skill_once() -> None:
    current = {
        SkillCategory.SOCIAL_EMOTIONAL: SkillScore(
            category=SkillCategory.SOCIAL_EMOTIONAL,
            score=70,
            level=SkillLevel.PROFICIENT,
        )
    }

    updated = apply_quest_outcome(
        current,
        [SkillCategory.SOCIAL_EMOTIONAL, SkillCategory.CHARACTER_VALUES, SkillCategory.SOCIAL_EMOTIONAL],
        "Decision Scenario",
        summarize_choice(3),
        NOW,
        evidence_prefix="Explorer Quest",
    )

    assert set(updated) == {SkillCategory.SOCIAL_EMOTIONAL, SkillCategory.CHARACTER_VALUES}
    assert updated[SkillCategory.SOCIAL_EMOTIONAL].score == 80
    assert updated[SkillCategory.CHARACTER_VALUES].evidence == ["Explorer Quest: Decision Scenario"]
    assert score_map(updated.values())[SkillCategory.CHARACTER_VALUES] == 60


def test_mini_game_insight() -> None:
    insight = quest_insight("mini_game", QuestScoreSummary(accuracy=85), 150, 0)

    assert insight.strength_observed == "Strong problem-solving skills"
    assert insight.evidence == ["Achieved 85% accuracy", "Quick decision-making (150s)", "Worked independently"]
    assert insight.skill_signals == [
        SkillCategory.COGNITIVE_REASONING,
        SkillCategory.ATTENTION,
        SkillCategory.METACOGNITION,
    ]


def test_slow_mini_game_with_hints() -> None:
    insight = quest_insight("mini_game", QuestScoreSummary(accuracy=40), 400, 2)

    assert insight.strength_observed == "Persistent effort in problem-solving"
    assert insight.evidence == ["Completed the challenge"]
    assert insight.skill_signals == [SkillCategory.COGNITIVE_REASONING]


def test_reflection_and_scenario_insights() -> None:
    detailed = quest_insight("reflection", summarize_reflection("w" * 120))
    brief = quest_insight("reflection", summarize_reflection("short"))
    scenario = quest_insight("choice_scenario", summarize_choice(0))
    other = quest_insight("puzzle", None)

    assert detailed.strength_observed == "Thoughtful self-reflection"
    assert brief.evidence == ["Engaged with reflection prompt"]
    assert scenario.skill_signals == [SkillCategory.SOCIAL_EMOTIONAL, SkillCategory.CHARACTER_VALUES]
    assert other.evidence == ["Completed the quest"]
    assert other.skill_signals == []


def test_coaching_insight_aligns_with_goal() -> None:
    insight = coaching_insight(
        "mini_game",
        QuestScoreSummary(accuracy=70),
        200,
        1,
        "Doctor",
        [SkillCategory.MEMORY],
    )

    assert insight.strength_observed == "Solid problem-solving approach"
    assert insight.improvement_tip == "To move closer to Doctor, continue practicing MEMORY challenges."
    assert insight.goal_alignment == "This practice strengthens MEMORY important for Doctor."
    assert insight.skill_signals == [SkillCategory.MEMORY]


def test_coaching_reflection_without_focus() -> None:
    insight = coaching_insight("reflection", summarize_reflection("ok"), 60, 0, "Astronaut", [])

    assert insight.improvement_tip == "Reflecting on your learning helps build self-awareness needed for Astronaut."
    assert insight.goal_alignment == "This practice strengthens key skills important for Astronaut."


def test_activity_xp() -> None:
    assert activity_xp() == 50
    assert activity_xp(80, 240, 12) == 50 + 40 + 30
    assert activity_xp(60, 540, 12, hints_used=2) == 50 + 30 + 20 - 10
    assert activity_xp(0, 1200, 6, hints_used=20) == 10


def test_levels_and_progress() -> None:
    assert len(LEVELS) == 12
    assert current_level(0).name == "Curious Rookie"
    assert current_level(250).level == 3
    assert current_level(99999).level == 12

    progress = xp_progress(175)
    assert progress.level == 2
    assert progress.xp_in_level == 75
    assert progress.xp_needed_for_next == 150
    assert progress.progress_percent == pytest.approx(50.0)
    assert xp_progress(30000).progress_percent == 100.0
    assert leveled_up(90, 110)
    assert not leveled_up(110, 200)
