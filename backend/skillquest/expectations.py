"""Grade expectation table: expected band, emphasis weight, and narratives per grade and skill."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError
from .grades import VALID_GRADES, Grade, SkillCategory
from .maturity import (
    DEFAULT_BAND_TOLERANCE,
    ExpectationComparison,
    SkillMaturityBand,
    compare_to_expectation,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_EXPECTATIONS_PATH = DATA_DIR / "grade_expectations.json"

Audience = Literal["student", "parent_teacher"]


class GradeSkillExpectation(BaseModel):
    """Expected maturity band and curricular emphasis for one skill at one grade."""

    model_config = ConfigDict(frozen=True)

    skill: SkillCategory
    expected_band: SkillMaturityBand
    emphasis_weight: float = Field(..., ge=0.0, le=1.0)
    student_narrative: str
    parent_teacher_narrative: str


class ExpectationTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str
    grades: Dict[int, List[GradeSkillExpectation]]

    def lookup(self, grade: Union[Grade, int], skill: SkillCategory) -> Optional[GradeSkillExpectation]:
        for entry in self.grades.get(int(grade), []):
            if entry.skill == skill:
                return entry
        return None

    def for_grade(self, grade: Union[Grade, int]) -> List[GradeSkillExpectation]:
        return list(self.grades.get(int(grade), []))

    def emphasis_weights(self, grade: Union[Grade, int]) -> Dict[SkillCategory, float]:
        return {entry.skill: entry.emphasis_weight for entry in self.grades.get(int(grade), [])}


def _validate_integrity(table: ExpectationTable) -> None:
    problems: List[str] = []
    for grade in VALID_GRADES:
        entries = table.grades.get(int(grade))
        if not entries:
            problems.append(f"grade {int(grade)} is missing")
            continue
        seen = [entry.skill for entry in entries]
        missing = [skill.value for skill in SkillCategory if skill not in seen]
        if missing:
            problems.append(f"grade {int(grade)} is missing skills: {', '.join(missing)}")
        duplicates = sorted({skill.value for skill in seen if seen.count(skill) > 1})
        if duplicates:
            problems.append(f"grade {int(grade)} lists skills more than once: {', '.join(duplicates)}")
        for entry in entries:
            if entry.expected_band == SkillMaturityBand.UNCLASSIFIED:
                problems.append(f"grade {int(grade)} {entry.skill.value} cannot expect UNCLASSIFIED")
    if problems:
        message = "Grade expectation table failed integrity checks: " + "; ".join(problems)
        logger.error(message)
        raise ConfigurationError(message)


def load_expectation_table(path: Optional[Union[str, Path]] = None) -> ExpectationTable:
    """Load and validate a grade expectation table from JSON."""
    source = Path(path) if path else DEFAULT_EXPECTATIONS_PATH
    try:
        with source.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Unable to read grade expectation table %s: %s", source, exc)
        raise ConfigurationError(f"Unable to read grade expectation table {source}: {exc}") from exc

    try:
        table = ExpectationTable.model_validate(raw)
    except ValidationError as exc:
        logger.error("Grade expectation table %s is invalid: %s", source, exc)
        raise ConfigurationError(f"Grade expectation table {source} is invalid: {exc}") from exc

    _validate_integrity(table)
    logger.debug("Loaded grade expectation table version %s from %s", table.version, source)
    return table


@lru_cache
def default_expectation_table() -> ExpectationTable:
    return load_expectation_table()


def _table(table: Optional[ExpectationTable]) -> ExpectationTable:
    return table if table is not None else default_expectation_table()


def expected_band(
    grade: Union[Grade, int],
    skill: SkillCategory,
    *,
    table: Optional[ExpectationTable] = None,
) -> Optional[SkillMaturityBand]:
    entry = _table(table).lookup(grade, skill)
    return entry.expected_band if entry else None


def emphasis_weight(
    grade: Union[Grade, int],
    skill: SkillCategory,
    *,
    table: Optional[ExpectationTable] = None,
) -> float:
    """Curricular emphasis for ``skill`` at ``grade``; 0 when the pair is undefined."""
    entry = _table(table).lookup(grade, skill)
    return entry.emphasis_weight if entry else 0.0


def narrative(
    grade: Union[Grade, int],
    skill: SkillCategory,
    audience: Audience,
    *,
    table: Optional[ExpectationTable] = None,
) -> Optional[str]:
    entry = _table(table).lookup(grade, skill)
    if entry is None:
        return None
    if audience == "student":
        return entry.student_narrative
    return entry.parent_teacher_narrative


def comparison_description(
    comparison: ExpectationComparison,
    current_band: SkillMaturityBand,
    expected: SkillMaturityBand,
    grade: Union[Grade, int],
) -> str:
    """Parent/teacher wording for a band comparison. Never framed as a deficit."""
    lead = (
        f"At a Grade {int(grade)} level, this skill is commonly {expected.value.lower()}. "
        f"Currently showing {current_band.value.lower()} use."
    )
    if comparison == "below_expected":
        return f"{lead} This is common and typically becomes consistent with practice."
    if comparison == "above_expected":
        return f"{lead} This shows signs of independent use for this grade context."
    return f"{lead} This is developing as expected."


class GradeContextInterpretation(BaseModel):
    skill: SkillCategory
    current_band: SkillMaturityBand
    expected_band: SkillMaturityBand = SkillMaturityBand.UNCLASSIFIED
    comparison: ExpectationComparison = "within_expected"
    insight: str


def interpret_in_grade_context(
    skill: SkillCategory,
    current_band: SkillMaturityBand,
    grade: Union[Grade, int],
    *,
    tolerance: int = DEFAULT_BAND_TOLERANCE,
    table: Optional[ExpectationTable] = None,
) -> GradeContextInterpretation:
    entry = _table(table).lookup(grade, skill)
    if entry is None:
        return GradeContextInterpretation(
            skill=skill,
            current_band=current_band,
            insight="This skill is developing. Continue practicing to build confidence.",
        )
    comparison = compare_to_expectation(current_band, entry.expected_band, tolerance=tolerance)
    return GradeContextInterpretation(
        skill=skill,
        current_band=current_band,
        expected_band=entry.expected_band,
        comparison=comparison,
        insight=comparison_description(comparison, current_band, entry.expected_band, grade),
    )


class GradeContextSummary(BaseModel):
    grade: int
    interpretations: List[GradeContextInterpretation] = Field(default_factory=list)
    overall_insight: str

    def skills_with(self, comparison: ExpectationComparison) -> List[SkillCategory]:
        return [item.skill for item in self.interpretations if item.comparison == comparison]


def grade_contextual_summary(
    bands: Mapping[SkillCategory, SkillMaturityBand],
    grade: Union[Grade, int],
    *,
    tolerance: int = DEFAULT_BAND_TOLERANCE,
    table: Optional[ExpectationTable] = None,
) -> GradeContextSummary:
    interpretations = [
        interpret_in_grade_context(skill, band, grade, tolerance=tolerance, table=table)
        for skill, band in bands.items()
    ]
    within = sum(1 for item in interpretations if item.comparison == "within_expected")
    above = sum(1 for item in interpretations if item.comparison == "above_expected")

    if above > within:
        insight = (
            f"At Grade {int(grade)} level, you're showing strong development across multiple skills. "
            "Continue building on this foundation."
        )
    elif within >= len(interpretations) * 0.6:
        insight = (
            f"At Grade {int(grade)} level, your skills are developing as expected. "
            "Keep practicing to build consistency."
        )
    else:
        insight = (
            f"At Grade {int(grade)} level, you're exploring different skills. "
            "This is common and skills typically strengthen with practice."
        )

    return GradeContextSummary(grade=int(grade), interpretations=interpretations, overall_insight=insight)


__all__ = [
    "Audience",
    "DEFAULT_EXPECTATIONS_PATH",
    "ExpectationTable",
    "GradeContextInterpretation",
    "GradeContextSummary",
    "GradeSkillExpectation",
    "comparison_description",
    "default_expectation_table",
    "emphasis_weight",
    "expected_band",
    "grade_contextual_summary",
    "interpret_in_grade_context",
    "load_expectation_table",
    "narrative",
]
