"""ORM models backing SkillQuest persistence."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


def _uuid() -> str:
    return str(uuid.uuid4())


class SkillScoreModel(TimestampMixin, Base):
    __tablename__ = "skill_scores"
    __table_args__ = (UniqueConstraint("student_id", "category", name="uq_skill_scores_student_category"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    level: Mapped[str] = mapped_column(String(16), nullable=False)
    trend: Mapped[str] = mapped_column(String(16), nullable=False)
    evidence: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    history: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)


class DailyQuestSetModel(TimestampMixin, Base):
    __tablename__ = "daily_quest_sets"
    __table_args__ = (UniqueConstraint("student_id", "date", "mode", name="uq_daily_quest_sets_student_date_mode"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quest_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    quests: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="ACTIVE", nullable=False)


class WeeklyPlanModel(TimestampMixin, Base):
    __tablename__ = "weekly_plans"
    __table_args__ = (UniqueConstraint("student_id", "week_start", name="uq_weekly_plans_student_week"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    goal_title: Mapped[str] = mapped_column(Text, nullable=False)
    plan: Mapped[dict] = mapped_column(JSONType, nullable=False)


class ClassFocusProfileModel(TimestampMixin, Base):
    __tablename__ = "class_focus_profiles"
    __table_args__ = (Index("ix_class_focus_profiles_teacher", "tenant_id", "teacher_id", "is_active"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(64), nullable=False)
    grade: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    priority_boosts: Mapped[dict[str, float]] = mapped_column(JSONType, default=dict, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    window_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    window_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_modified: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )


class CareerUnlockModel(Base):
    __tablename__ = "career_unlocks"
    __table_args__ = (UniqueConstraint("student_id", "career_id", name="uq_career_unlocks_student_career"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False)
    career_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    evidence: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )


class QuestAttemptModel(TimestampMixin, Base):
    __tablename__ = "quest_attempts"
    __table_args__ = (Index("ix_quest_attempts_student_completed", "student_id", "completed_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quest_id: Mapped[str] = mapped_column(String(128), nullable=False)
    quest_type: Mapped[str] = mapped_column(String(32), nullable=False)
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    skill_tags: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    accuracy: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    score_summary: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    grade_at_attempt: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )


__all__ = [
    "CareerUnlockModel",
    "ClassFocusProfileModel",
    "DailyQuestSetModel",
    "QuestAttemptModel",
    "SkillScoreModel",
    "WeeklyPlanModel",
]
