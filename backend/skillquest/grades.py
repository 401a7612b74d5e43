"""Grades, skill categories, and grade-scoped content helpers."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Union

from .errors import UnknownGradeError

Difficulty = Literal["easy", "medium", "hard"]


class Grade(IntEnum):
    EIGHT = 8
    NINE = 9
    TEN = 10


class SkillCategory(str, Enum):
    COGNITIVE_REASONING = "COGNITIVE_REASONING"
    CREATIVITY = "CREATIVITY"
    LANGUAGE = "LANGUAGE"
    MEMORY = "MEMORY"
    ATTENTION = "ATTENTION"
    PLANNING = "PLANNING"
    SOCIAL_EMOTIONAL = "SOCIAL_EMOTIONAL"
    METACOGNITION = "METACOGNITION"
    CHARACTER_VALUES = "CHARACTER_VALUES"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ")


class SkillLevel(str, Enum):
    EMERGING = "EMERGING"
    DEVELOPING = "DEVELOPING"
    PROFICIENT = "PROFICIENT"
    ADVANCED = "ADVANCED"


class SkillTrend(str, Enum):
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    NEEDS_ATTENTION = "NEEDS_ATTENTION"


VALID_GRADES: tuple[Grade, ...] = (Grade.EIGHT, Grade.NINE, Grade.TEN)
DEFAULT_GRADE = Grade.EIGHT

_DIFFICULTY_MULTIPLIERS: Dict[Grade, float] = {
    Grade.EIGHT: 0.9,
    Grade.NINE: 1.0,
    Grade.TEN: 1.1,
}


def is_valid_grade(value: object) -> bool:
    try:
        return int(value) in {grade.value for grade in VALID_GRADES}  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False


def parse_grade(value: object) -> Grade:
    """Strict conversion used at validation seams."""
    if not is_valid_grade(value):
        raise UnknownGradeError(value)
    return Grade(int(value))  # type: ignore[arg-type]


def coerce_grade(value: object, default: Grade = DEFAULT_GRADE) -> Grade:
    """Lenient conversion: anything unsupported falls back to ``default``."""
    if value is None or not is_valid_grade(value):
        return default
    return Grade(int(value))  # type: ignore[arg-type]


def coerce_skill(value: Union[str, SkillCategory]) -> Optional[SkillCategory]:
    if isinstance(value, SkillCategory):
        return value
    try:
        return SkillCategory(str(value).strip().upper())
    except ValueError:
        return None


def next_grade(grade: Grade) -> Optional[Grade]:
    if grade == Grade.EIGHT:
        return Grade.NINE
    if grade == Grade.NINE:
        return Grade.TEN
    return None


def level_for_score(score: float) -> SkillLevel:
    if score >= 80:
        return SkillLevel.ADVANCED
    if score >= 60:
        return SkillLevel.PROFICIENT
    if score >= 40:
        return SkillLevel.DEVELOPING
    return SkillLevel.EMERGING


def is_universal(grade_applicability: Iterable[int]) -> bool:
    """Universal content (empty or covering every supported grade) applies everywhere."""
    grades = set(int(value) for value in grade_applicability)
    return not grades or grades >= {grade.value for grade in VALID_GRADES}


def is_applicable_to_grade(grade_applicability: Iterable[int], grade: Grade) -> bool:
    grades = list(grade_applicability)
    if is_universal(grades):
        return True
    return int(grade) in {int(value) for value in grades}


def grade_adjusted_difficulty(base_difficulty: float, grade: Grade) -> float:
    multiplier = _DIFFICULTY_MULTIPLIERS.get(grade, 1.0)
    return min(100.0, max(0.0, base_difficulty * multiplier))


def grade_difficulty(
    difficulty_by_grade: Optional[Mapping[int, Difficulty]],
    grade: Grade,
    default: Difficulty = "medium",
) -> Difficulty:
    if not difficulty_by_grade:
        return default
    return difficulty_by_grade.get(int(grade)) or default


def grade_focus(grade: Grade) -> Dict[str, object]:
    if grade == Grade.EIGHT:
        return {
            "focus": "Foundation & Exploration",
            "description": "Building foundational reasoning, curiosity, and exploration skills",
            "skill_emphasis": [SkillCategory.COGNITIVE_REASONING, SkillCategory.CREATIVITY],
        }
    if grade == Grade.NINE:
        return {
            "focus": "Application & Planning",
            "description": "Applying knowledge, structured thinking, and planning skills",
            "skill_emphasis": [
                SkillCategory.PLANNING,
                SkillCategory.COGNITIVE_REASONING,
                SkillCategory.ATTENTION,
                SkillCategory.METACOGNITION,
            ],
        }
    return {
        "focus": "Exam Readiness & Career Alignment",
        "description": "Exam preparation, decision-making, and career alignment",
        "skill_emphasis": [SkillCategory.PLANNING, SkillCategory.COGNITIVE_REASONING],
    }


def career_messaging(grade: Grade) -> Dict[str, str]:
    messages: Dict[Grade, Dict[str, str]] = {
        Grade.EIGHT: {
            "explorer": "Explore different careers and discover what interests you",
            "facilitator": "Build foundational skills for future career paths",
        },
        Grade.NINE: {
            "explorer": "Discover careers that align with your interests and skills",
            "facilitator": "Develop skills aligned with your career interests",
        },
        Grade.TEN: {
            "explorer": "Prepare for careers and understand readiness requirements",
            "facilitator": "Strengthen skills for your chosen career path",
        },
    }
    return dict(messages.get(grade, messages[DEFAULT_GRADE]))


def skill_keys(skills: Iterable[Union[str, SkillCategory]]) -> List[SkillCategory]:
    resolved: List[SkillCategory] = []
    for value in skills:
        skill = coerce_skill(value)
        if skill is not None:
            resolved.append(skill)
    return resolved


__all__ = [
    "DEFAULT_GRADE",
    "Difficulty",
    "Grade",
    "SkillCategory",
    "SkillLevel",
    "SkillTrend",
    "VALID_GRADES",
    "career_messaging",
    "coerce_grade",
    "coerce_skill",
    "grade_adjusted_difficulty",
    "grade_difficulty",
    "grade_focus",
    "is_applicable_to_grade",
    "is_universal",
    "is_valid_grade",
    "level_for_score",
    "next_grade",
    "parse_grade",
    "skill_keys",
]
