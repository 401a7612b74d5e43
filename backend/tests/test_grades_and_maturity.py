from __future__ import annotations

import pytest

from skillquest.errors import UnknownGradeError
from skillquest.grades import (
    Grade,
    SkillCategory,
    SkillLevel,
    career_messaging,
    coerce_grade,
    grade_adjusted_difficulty,
    grade_difficulty,
    grade_focus,
    is_applicable_to_grade,
    level_for_score,
    next_grade,
    parse_grade,
)
from skillquest.maturity import (
    BAND_ORDER,
    SkillMaturityBand,
    band_for_level,
    band_label,
    band_order,
    compare_to_expectation,
    is_band_higher,
    level_title,
    map_to_level,
    map_to_xp,
    student_copy,
)

_SWAP = {
    "below_expected": "above_expected",
    "above_expected": "below_expected",
    "within_expected": "within_expected",
}


def test_grade_parsing_is_strict_only_where_asked() -> None:
    assert parse_grade("9") == Grade.NINE
    with pytest.raises(UnknownGradeError):
        parse_grade(7)
    assert coerce_grade(7) == Grade.EIGHT
    assert coerce_grade(None) == Grade.EIGHT
    assert coerce_grade("10") == Grade.TEN


def test_next_grade_and_grade_metadata() -> None:
    assert next_grade(Grade.EIGHT) == Grade.NINE
    assert next_grade(Grade.TEN) is None
    assert grade_focus(Grade.NINE)["focus"] == "Application & Planning"
    assert "explorer" in career_messaging(Grade.TEN)


def test_grade_difficulty_helpers() -> None:
    assert grade_adjusted_difficulty(50, Grade.EIGHT) == pytest.approx(45.0)
    assert grade_adjusted_difficulty(95, Grade.TEN) == 100.0
    assert grade_difficulty({8: "easy", 10: "hard"}, Grade.TEN) == "hard"
    assert grade_difficulty({8: "easy"}, Grade.NINE) == "medium"
    assert grade_difficulty(None, Grade.NINE, default="easy") == "easy"


def test_universal_content_applies_to_every_grade() -> None:
    assert is_applicable_to_grade([], Grade.NINE)
    assert is_applicable_to_grade([8, 9, 10], Grade.TEN)
    assert is_applicable_to_grade([9], Grade.NINE)
    assert not is_applicable_to_grade([9], Grade.EIGHT)


def test_level_thresholds() -> None:
    assert level_for_score(39.9) == SkillLevel.EMERGING
    assert level_for_score(40) == SkillLevel.DEVELOPING
    assert level_for_score(60) == SkillLevel.PROFICIENT
    assert level_for_score(80) == SkillLevel.ADVANCED


def test_band_order_is_strictly_increasing() -> None:
    orders = [band_order(band) for band in BAND_ORDER]
    assert orders == sorted(orders)
    assert len(set(orders)) == len(BAND_ORDER)
    assert is_band_higher(SkillMaturityBand.ADAPTIVE, SkillMaturityBand.CONSISTENT)
    assert not is_band_higher(SkillMaturityBand.DISCOVERING, SkillMaturityBand.PRACTICING)


def test_comparison_uses_one_step_tolerance() -> None:
    expected = SkillMaturityBand.CONSISTENT

    assert compare_to_expectation(SkillMaturityBand.PRACTICING, expected) == "within_expected"
    assert compare_to_expectation(SkillMaturityBand.INDEPENDENT, expected) == "within_expected"
    assert compare_to_expectation(SkillMaturityBand.DISCOVERING, expected) == "below_expected"
    assert compare_to_expectation(SkillMaturityBand.ADAPTIVE, expected) == "above_expected"
    assert compare_to_expectation(SkillMaturityBand.PRACTICING, expected, tolerance=0) == "below_expected"


def test_unclassified_is_always_within_expectation() -> None:
    for expected in BAND_ORDER[1:]:
        assert compare_to_expectation(SkillMaturityBand.UNCLASSIFIED, expected) == "within_expected"


def test_comparison_flips_when_roles_swap() -> None:
    classified = BAND_ORDER[1:]
    for current in classified:
        for expected in classified:
            forward = compare_to_expectation(current, expected)
            backward = compare_to_expectation(expected, current)
            assert backward == _SWAP[forward]


def test_level_mapping_stays_inside_band_range() -> None:
    assert map_to_level(SkillMaturityBand.UNCLASSIFIED, 90) == 1
    assert map_to_level(SkillMaturityBand.DISCOVERING, 10) == 1
    assert map_to_level(SkillMaturityBand.DISCOVERING, 60) == 2
    assert map_to_level(SkillMaturityBand.CONSISTENT, None) == 6
    assert map_to_level(SkillMaturityBand.ADAPTIVE, 100) == 10
    assert map_to_level(SkillMaturityBand.ADAPTIVE, 0) == 9


def test_xp_mapping() -> None:
    assert map_to_xp(SkillMaturityBand.UNCLASSIFIED, 40) == 20
    assert map_to_xp(SkillMaturityBand.PRACTICING, 55) == 327
    assert map_to_xp(SkillMaturityBand.ADAPTIVE, 150) == 1550


def test_student_facing_copy_hides_band_names() -> None:
    assert level_title(1) == "Seedling"
    assert level_title(12) == "Transcendent"
    assert band_label(SkillMaturityBand.UNCLASSIFIED) == "Getting Started"
    for band in BAND_ORDER:
        copy = student_copy(band, "up")
        assert band.value.lower() not in copy.lower()
    assert student_copy(SkillMaturityBand.CONSISTENT, "down") == "Keep practicing!"


def test_band_for_level() -> None:
    assert band_for_level(None) == SkillMaturityBand.UNCLASSIFIED
    assert band_for_level(SkillLevel.EMERGING) == SkillMaturityBand.DISCOVERING
    assert band_for_level(SkillLevel.ADVANCED) == SkillMaturityBand.INDEPENDENT


def test_skill_display_name() -> None:
    assert SkillCategory.SOCIAL_EMOTIONAL.display_name == "SOCIAL EMOTIONAL"
