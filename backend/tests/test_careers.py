from __future__ import annotations

import json
from pathlib import Path

import pytest

from skillquest.careers import (
    ActivityPerformance,
    Career,
    CareerCatalog,
    RarityTier,
    default_career_catalog,
    evaluate_career_unlocks,
    load_career_catalog,
    unlock_confidence,
)
from skillquest.content import summarize_reflection
from skillquest.errors import ConfigurationError
from skillquest.grades import SkillCategory


def _career(career_id: str, skills: list[SkillCategory], tier: RarityTier = RarityTier.COMMON) -> Career:
    return Career(
        id=career_id,
        title=career_id.replace("-", " ").title(),
        short_pitch="pitch",
        skill_signals=skills,
        rarity_tier=tier,
    )


CATALOG = CareerCatalog(
    version="test",
    careers=[
        _career("analyst", [SkillCategory.COGNITIVE_REASONING]),
        _career("architect", [SkillCategory.PLANNING, SkillCategory.CREATIVITY], RarityTier.EMERGING),
        _career("researcher", [SkillCategory.COGNITIVE_REASONING, SkillCategory.MEMORY], RarityTier.ADVANCED),
        _career("astronaut", [SkillCategory.COGNITIVE_REASONING], RarityTier.FRONTIER),
        _career("analyst", [SkillCategory.MEMORY]),
    ],
)


def test_confidence_adjustments() -> None:
    common = CATALOG.careers[0]
    frontier = CATALOG.careers[3]

    assert unlock_confidence(common, ActivityPerformance()) == 50
    assert unlock_confidence(common, ActivityPerformance(accuracy=85)) == 70
    assert unlock_confidence(common, ActivityPerformance(accuracy=65)) == 60
    assert unlock_confidence(common, ActivityPerformance(response_quality=150)) == 65
    assert unlock_confidence(frontier, ActivityPerformance(accuracy=50)) == 20


def test_top_two_strongest_candidates() -> None:
    unlocks = evaluate_career_unlocks(
        [SkillCategory.COGNITIVE_REASONING, SkillCategory.PLANNING],
        ActivityPerformance(accuracy=90),
        [],
        catalog=CATALOG,
    )

    assert [candidate.career.id for candidate in unlocks] == ["analyst", "architect"]
    assert [candidate.confidence for candidate in unlocks] == [70, 60]


def test_already_unlocked_and_low_confidence_careers_are_dropped() -> None:
    unlocks = evaluate_career_unlocks(
        [SkillCategory.COGNITIVE_REASONING],
        ActivityPerformance(accuracy=50),
        ["analyst"],
        catalog=CATALOG,
    )

    # researcher is 30 and astronaut 20, both under the floor.
    assert unlocks == []


def test_each_career_is_proposed_once() -> None:
    unlocks = evaluate_career_unlocks(
        [SkillCategory.MEMORY, SkillCategory.COGNITIVE_REASONING],
        ActivityPerformance(accuracy=80),
        [],
        catalog=CATALOG,
    )

    ids = [candidate.career.id for candidate in unlocks]
    assert len(ids) == len(set(ids))


def test_reason_and_evidence_text() -> None:
    unlocks = evaluate_career_unlocks(
        [SkillCategory.COGNITIVE_REASONING, SkillCategory.ATTENTION],
        ActivityPerformance(accuracy=82.5),
        [],
        catalog=CATALOG,
    )

    first = unlocks[0]
    assert first.reason == "Your performance in cognitive reasoning and attention suggests this career might interest you"
    assert first.evidence == [
        "Strong performance (82.5% accuracy)",
        "Demonstrated cognitive reasoning, attention skills",
    ]


def test_performance_from_reflection_summary_uses_response_length() -> None:
    summary = summarize_reflection("y" * 140)

    performance = ActivityPerformance.from_summary(summary, 120)

    assert performance.response_quality == 140
    assert performance.accuracy is None
    assert unlock_confidence(CATALOG.careers[0], performance) == 65


def test_default_catalog_is_loadable() -> None:
    catalog = default_career_catalog()

    assert len(catalog.careers) == 16
    assert catalog.get("software-engineer") is not None
    assert catalog.get("missing") is None


def test_catalog_rejects_duplicate_ids(tmp_path: Path) -> None:
    path = tmp_path / "careers.json"
    path.write_text(json.dumps(CATALOG.model_dump(mode="json")), encoding="utf-8")

    with pytest.raises(ConfigurationError, match="repeats ids: analyst"):
        load_career_catalog(path)


def test_catalog_rejects_unknown_skills(tmp_path: Path) -> None:
    path = tmp_path / "careers.json"
    path.write_text(
        json.dumps(
            {
                "version": "bad",
                "careers": [{"id": "x", "title": "X", "short_pitch": "x", "skill_signals": ["JUGGLING"]}],
            }
        ),
        encoding="utf-8",
    )

    with pytest.raises(ConfigurationError):
        load_career_catalog(path)
