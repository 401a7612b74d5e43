"""Explorer daily quest selection and teacher assignment recommendations."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, List, Mapping, Optional, Sequence, Union

from .class_focus import ClassFocusProfile
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .content import QuestModel, generate_daily_quests
from .expectations import ExpectationTable
from .grades import Grade, SkillCategory, coerce_grade
from .selection import RankedCandidate, compute_weak_signals, select_candidates
from .skill_scores import ActivityOutcome
from .telemetry import emit_event

logger = logging.getLogger(__name__)

EXPLORER_POOL_SIZE = 10
EXPLORER_QUEST_COUNT = 3
ASSIGNMENT_POOL_SIZE = 20


def build_daily_quest_set(
    student_id: str,
    day: date,
    grade: Optional[Union[Grade, int]],
    scores: Mapping[SkillCategory, float],
    outcomes: Iterable[ActivityOutcome] = (),
    *,
    now: Optional[datetime] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    table: Optional[ExpectationTable] = None,
) -> List[QuestModel]:
    """Generate the explorer pool for the day and keep the top three."""
    resolved = coerce_grade(grade)
    pool = generate_daily_quests(student_id, day, EXPLORER_POOL_SIZE, resolved)
    weak_signals = compute_weak_signals(outcomes, now, config)
    ranked = select_candidates(
        pool,
        resolved,
        scores,
        EXPLORER_QUEST_COUNT,
        weak_signals=weak_signals,
        config=config,
        table=table,
    )
    return [item.candidate for item in ranked]


def select_quests_for_assignment(
    student_id: str,
    student_grade: Optional[Union[Grade, int]],
    quest_count: int,
    scores: Mapping[SkillCategory, float],
    *,
    day: date,
    quest_types: Optional[Sequence[str]] = None,
    grade_scope: Optional[Union[Grade, int]] = None,
    class_focus: Optional[ClassFocusProfile] = None,
    weak_signals: Optional[Mapping[SkillCategory, float]] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    table: Optional[ExpectationTable] = None,
) -> List[RankedCandidate[QuestModel]]:
    """Rank a larger pool for a teacher assignment.

    ``grade_scope`` overrides the student's grade. Grade filtering always
    runs before the class focus boost is considered.
    """
    grade = coerce_grade(grade_scope if grade_scope is not None else student_grade)
    pool: List[QuestModel] = generate_daily_quests(student_id, day, ASSIGNMENT_POOL_SIZE, grade)
    if quest_types:
        allowed = set(quest_types)
        pool = [quest for quest in pool if quest.type in allowed]

    boosts = class_focus.boosts() if class_focus is not None else None
    ranked = select_candidates(
        pool,
        grade,
        scores,
        quest_count,
        weak_signals=weak_signals,
        boosts=boosts,
        config=config,
        table=table,
    )
    if boosts:
        emit_event(
            "class_focus_applied",
            profile_id=class_focus.id if class_focus else None,
            teacher_id=class_focus.teacher_id if class_focus else None,
            grade=int(grade),
            boosted=[item.candidate.id for item in ranked if item.breakdown and item.breakdown.class_focus_boost > 0],
        )
    return ranked


__all__ = [
    "ASSIGNMENT_POOL_SIZE",
    "EXPLORER_POOL_SIZE",
    "EXPLORER_QUEST_COUNT",
    "build_daily_quest_set",
    "select_quests_for_assignment",
]
