"""Database-backed skill scores and completed quest attempts."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Set

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..content import QuestScoreSummary
from ..db.models import QuestAttemptModel, SkillScoreModel
from ..grades import SkillCategory, SkillLevel, SkillTrend
from ..skill_scores import ActivityOutcome, SkillScore, SkillScoreHistoryEntry
from ..telemetry import emit_event

logger = logging.getLogger(__name__)

ASSESSMENT_MODE = "ASSESSMENT"
ACTIVITY_MODE = "ACTIVITY"


class ActivitySummary(BaseModel):
    """Completed-work counts feeding the parent evidence gate."""

    assessment_count: int = 0
    quest_count: int = 0
    activity_count: int = 0
    activity_types: int = 0
    completed_dates: List[date] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.assessment_count + self.quest_count + self.activity_count


class SkillScoreRepository:
    def for_student(self, session: Session, student_id: str) -> List[SkillScore]:
        stmt = (
            select(SkillScoreModel)
            .where(SkillScoreModel.student_id == student_id)
            .order_by(SkillScoreModel.category)
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def by_category(self, session: Session, student_id: str) -> Dict[SkillCategory, SkillScore]:
        return {score.category: score for score in self.for_student(session, student_id)}

    def save(
        self,
        session: Session,
        tenant_id: str,
        student_id: str,
        updated: Mapping[SkillCategory, SkillScore],
    ) -> List[SkillScore]:
        stmt = select(SkillScoreModel).where(SkillScoreModel.student_id == student_id)
        existing = {model.category: model for model in session.execute(stmt).scalars()}

        for category, score in updated.items():
            model = existing.get(category.value)
            previous = model.score if model is not None else None
            if model is None:
                model = SkillScoreModel(tenant_id=tenant_id, student_id=student_id, category=category.value)
                session.add(model)
            model.score = score.score
            model.level = score.level.value
            model.trend = score.trend.value
            model.evidence = list(score.evidence)
            model.history = [entry.model_dump(mode="json") for entry in score.history]
            emit_event(
                "skill_score_updated",
                tenant_id=tenant_id,
                student_id=student_id,
                category=category,
                previous_score=previous,
                score=score.score,
                trend=score.trend,
            )
        session.flush()
        return list(updated.values())

    def _to_domain(self, model: SkillScoreModel) -> SkillScore:
        return SkillScore(
            category=SkillCategory(model.category),
            score=model.score,
            level=SkillLevel(model.level),
            trend=SkillTrend(model.trend),
            evidence=list(model.evidence or []),
            history=[SkillScoreHistoryEntry.model_validate(entry) for entry in model.history or []],
        )


class QuestAttemptRepository:
    def record(
        self,
        session: Session,
        *,
        tenant_id: str,
        student_id: str,
        quest_id: str,
        quest_type: str,
        mode: str,
        skill_tags: Iterable[SkillCategory],
        accuracy: Optional[float] = None,
        summary: Optional[QuestScoreSummary] = None,
        grade: Optional[int] = None,
        completed_at: Optional[datetime] = None,
    ) -> QuestAttemptModel:
        model = QuestAttemptModel(
            tenant_id=tenant_id,
            student_id=student_id,
            quest_id=quest_id,
            quest_type=quest_type,
            mode=mode,
            skill_tags=[skill.value for skill in skill_tags],
            accuracy=accuracy,
            score_summary=summary.model_dump(mode="json") if summary else {},
            grade_at_attempt=grade,
            completed_at=completed_at or datetime.now(timezone.utc),
        )
        session.add(model)
        session.flush()
        return model

    def recent_outcomes(
        self,
        session: Session,
        student_id: str,
        *,
        now: Optional[datetime] = None,
        window_days: int = 14,
    ) -> List[ActivityOutcome]:
        since = (now or datetime.now(timezone.utc)) - timedelta(days=window_days)
        stmt = (
            select(QuestAttemptModel)
            .where(QuestAttemptModel.student_id == student_id, QuestAttemptModel.completed_at >= since)
            .order_by(QuestAttemptModel.completed_at)
        )
        return [
            ActivityOutcome(
                activity_type=model.quest_type,
                skill_tags=[SkillCategory(tag) for tag in model.skill_tags or []],
                accuracy=model.accuracy,
                completed_at=model.completed_at,
            )
            for model in session.execute(stmt).scalars()
        ]

    def completed_quest_ids(self, session: Session, student_id: str, quest_ids: Iterable[str]) -> Set[str]:
        wanted = list(quest_ids)
        if not wanted:
            return set()
        stmt = select(QuestAttemptModel.quest_id).where(
            QuestAttemptModel.student_id == student_id,
            QuestAttemptModel.quest_id.in_(wanted),
        )
        return set(session.execute(stmt).scalars())

    def activity_summary(self, session: Session, student_id: str) -> ActivitySummary:
        stmt = select(QuestAttemptModel).where(QuestAttemptModel.student_id == student_id)
        summary = ActivitySummary()
        types = set()
        dates = set()
        for model in session.execute(stmt).scalars():
            if model.mode == ASSESSMENT_MODE:
                summary.assessment_count += 1
            elif model.mode == ACTIVITY_MODE:
                summary.activity_count += 1
            else:
                summary.quest_count += 1
            types.add(model.quest_type)
            dates.add(model.completed_at.date())
        summary.activity_types = len(types)
        summary.completed_dates = sorted(dates)
        return summary


__all__ = [
    "ACTIVITY_MODE",
    "ASSESSMENT_MODE",
    "ActivitySummary",
    "QuestAttemptRepository",
    "SkillScoreRepository",
]
