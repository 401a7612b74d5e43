"""Requirement-based grade mastery badges."""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from .grades import Grade, coerce_grade


class MasteryRequirements(BaseModel):
    min_quests_completed: Optional[int] = None
    min_assessments_completed: Optional[int] = None
    min_skill_score: Optional[float] = None
    end_year_assessment_completed: bool = False


class MasteryCheck(BaseModel):
    eligible: bool
    met_requirements: List[str] = Field(default_factory=list)
    unmet_requirements: List[str] = Field(default_factory=list)


def default_mastery_requirements(grade: Union[Grade, int]) -> MasteryRequirements:
    resolved = coerce_grade(grade)
    if resolved == Grade.EIGHT:
        return MasteryRequirements(min_quests_completed=25, min_assessments_completed=6, min_skill_score=55)
    if resolved == Grade.TEN:
        return MasteryRequirements(
            min_quests_completed=35,
            min_assessments_completed=6,
            min_skill_score=65,
            end_year_assessment_completed=True,
        )
    return MasteryRequirements(min_quests_completed=30, min_assessments_completed=6, min_skill_score=60)


def check_grade_mastery(
    requirements: MasteryRequirements,
    quests_completed: int,
    assessments_completed: int,
    skill_scores: Iterable[float],
    end_year_assessment_completed: bool = False,
) -> MasteryCheck:
    """Evaluate each requirement; eligible only when nothing is unmet.

    The skill score requirement is skipped when no scores exist yet.
    """
    met: List[str] = []
    unmet: List[str] = []

    if requirements.min_quests_completed is not None:
        required = requirements.min_quests_completed
        if quests_completed >= required:
            met.append(f"Completed {quests_completed} quests (required: {required})")
        else:
            unmet.append(f"Need {required - quests_completed} more quests (completed: {quests_completed})")

    if requirements.min_assessments_completed is not None:
        required = requirements.min_assessments_completed
        if assessments_completed >= required:
            met.append(f"Completed {assessments_completed} assessments (required: {required})")
        else:
            unmet.append(
                f"Need {required - assessments_completed} more assessments (completed: {assessments_completed})"
            )

    scores = list(skill_scores)
    if requirements.min_skill_score is not None and scores:
        average = sum(scores) / len(scores)
        line = f"Average skill score: {average:.1f} (required: {requirements.min_skill_score:g})"
        (met if average >= requirements.min_skill_score else unmet).append(line)

    if requirements.end_year_assessment_completed:
        if end_year_assessment_completed:
            met.append("End-year assessment completed")
        else:
            unmet.append("End-year assessment not completed")

    return MasteryCheck(eligible=not unmet, met_requirements=met, unmet_requirements=unmet)


__all__ = [
    "MasteryCheck",
    "MasteryRequirements",
    "check_grade_mastery",
    "default_mastery_requirements",
]
