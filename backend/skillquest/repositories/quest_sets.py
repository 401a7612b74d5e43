"""Per-day quest sets and weekly plans, created at most once per key."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..content import Quest, QuestModel, dump_quests, load_quests
from ..db.models import DailyQuestSetModel, WeeklyPlanModel
from ..planner import WeeklyPlan
from ..telemetry import emit_event
from .common import get_or_create

logger = logging.getLogger(__name__)

EXPLORER_MODE = "EXPLORER"
FACILITATOR_MODE = "FACILITATOR"


class StoredQuestSet(BaseModel):
    id: str
    tenant_id: str
    student_id: str
    day: date
    mode: str
    status: str
    quests: List[Quest] = Field(default_factory=list)
    created: bool = False


class StoredWeeklyPlan(BaseModel):
    id: str
    tenant_id: str
    student_id: str
    week_start: date
    plan: WeeklyPlan
    created: bool = False


class QuestSetStore:
    """Stores one quest set per (student, date, mode); later calls reuse it."""

    def get(self, session: Session, student_id: str, day: date, mode: str) -> Optional[StoredQuestSet]:
        model = self._find(session, student_id, day, mode)
        return self._to_domain(model, created=False) if model else None

    def get_or_create(
        self,
        session: Session,
        tenant_id: str,
        student_id: str,
        day: date,
        mode: str,
        factory: Callable[[], Sequence[QuestModel]],
    ) -> StoredQuestSet:
        model, created = get_or_create(
            session,
            lambda: self._find(session, student_id, day, mode),
            lambda: DailyQuestSetModel(
                tenant_id=tenant_id,
                student_id=student_id,
                quest_date=day,
                mode=mode,
                quests=dump_quests(factory()),
                status="ACTIVE",
            ),
            label=f"quest set {student_id}/{day.isoformat()}/{mode}",
        )
        emit_event(
            "quest_set_created" if created else "quest_set_reused",
            tenant_id=tenant_id,
            student_id=student_id,
            date=day,
            mode=mode,
            quest_ids=[quest.get("id") for quest in model.quests],
        )
        return self._to_domain(model, created=created)

    def find_quest(self, session: Session, student_id: str, quest_id: str) -> Optional[QuestModel]:
        """The stored quest with ``quest_id`` from any of the student's quest sets, newest first."""
        stmt = (
            select(DailyQuestSetModel)
            .where(DailyQuestSetModel.student_id == student_id)
            .order_by(DailyQuestSetModel.quest_date.desc())
        )
        for model in session.execute(stmt).scalars():
            for quest in load_quests(model.quests):
                if quest.id == quest_id:
                    return quest
        return None

    def _find(self, session: Session, student_id: str, day: date, mode: str) -> Optional[DailyQuestSetModel]:
        stmt = select(DailyQuestSetModel).where(
            DailyQuestSetModel.student_id == student_id,
            DailyQuestSetModel.quest_date == day,
            DailyQuestSetModel.mode == mode,
        )
        return session.execute(stmt).scalar_one_or_none()

    def _to_domain(self, model: DailyQuestSetModel, *, created: bool) -> StoredQuestSet:
        return StoredQuestSet(
            id=model.id,
            tenant_id=model.tenant_id,
            student_id=model.student_id,
            day=model.quest_date,
            mode=model.mode,
            status=model.status,
            quests=load_quests(model.quests),
            created=created,
        )


class WeeklyPlanStore:
    """Stores one weekly plan per (student, week start)."""

    def get(self, session: Session, student_id: str, week_start: date) -> Optional[StoredWeeklyPlan]:
        model = self._find(session, student_id, week_start)
        return self._to_domain(model, created=False) if model else None

    def get_or_create(
        self,
        session: Session,
        tenant_id: str,
        student_id: str,
        week_start: date,
        factory: Callable[[], WeeklyPlan],
    ) -> StoredWeeklyPlan:
        def build() -> WeeklyPlanModel:
            plan = factory()
            return WeeklyPlanModel(
                tenant_id=tenant_id,
                student_id=student_id,
                week_start=week_start,
                goal_title=plan.goal_title,
                plan=plan.model_dump(mode="json"),
            )

        model, created = get_or_create(
            session,
            lambda: self._find(session, student_id, week_start),
            build,
            label=f"weekly plan {student_id}/{week_start.isoformat()}",
        )
        if created:
            emit_event(
                "weekly_plan_created",
                tenant_id=tenant_id,
                student_id=student_id,
                week_start=week_start,
                goal_title=model.goal_title,
            )
        return self._to_domain(model, created=created)

    def find_quest(self, session: Session, student_id: str, quest_id: str) -> Optional[QuestModel]:
        stmt = (
            select(WeeklyPlanModel)
            .where(WeeklyPlanModel.student_id == student_id)
            .order_by(WeeklyPlanModel.week_start.desc())
        )
        for model in session.execute(stmt).scalars():
            plan = WeeklyPlan.model_validate(model.plan)
            for day in plan.daily_plan:
                for quest in day.quests:
                    if quest.id == quest_id:
                        return quest
        return None

    def _find(self, session: Session, student_id: str, week_start: date) -> Optional[WeeklyPlanModel]:
        stmt = select(WeeklyPlanModel).where(
            WeeklyPlanModel.student_id == student_id,
            WeeklyPlanModel.week_start == week_start,
        )
        return session.execute(stmt).scalar_one_or_none()

    def _to_domain(self, model: WeeklyPlanModel, *, created: bool) -> StoredWeeklyPlan:
        return StoredWeeklyPlan(
            id=model.id,
            tenant_id=model.tenant_id,
            student_id=model.student_id,
            week_start=model.week_start,
            plan=WeeklyPlan.model_validate(model.plan),
            created=created,
        )


__all__ = [
    "EXPLORER_MODE",
    "FACILITATOR_MODE",
    "QuestSetStore",
    "StoredQuestSet",
    "StoredWeeklyPlan",
    "WeeklyPlanStore",
]
