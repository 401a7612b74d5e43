"""Initial skill score, quest set, weekly plan, class focus, career and attempt tables."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20260301_01_initial_engine_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "skill_scores",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("student_id", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("level", sa.String(length=16), nullable=False),
        sa.Column("trend", sa.String(length=16), nullable=False),
        sa.Column("evidence", sa.JSON(), nullable=False),
        sa.Column("history", sa.JSON(), nullable=False),
        sa.UniqueConstraint("student_id", "category", name="uq_skill_scores_student_category"),
    )
    op.create_index("ix_skill_scores_tenant_id", "skill_scores", ["tenant_id"])
    op.create_index("ix_skill_scores_student_id", "skill_scores", ["student_id"])

    op.create_table(
        "daily_quest_sets",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("student_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("quests", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
        sa.UniqueConstraint("student_id", "date", "mode", name="uq_daily_quest_sets_student_date_mode"),
    )
    op.create_index("ix_daily_quest_sets_tenant_id", "daily_quest_sets", ["tenant_id"])

    op.create_table(
        "weekly_plans",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("student_id", sa.String(length=64), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("goal_title", sa.Text(), nullable=False),
        sa.Column("plan", sa.JSON(), nullable=False),
        sa.UniqueConstraint("student_id", "week_start", name="uq_weekly_plans_student_week"),
    )
    op.create_index("ix_weekly_plans_tenant_id", "weekly_plans", ["tenant_id"])

    op.create_table(
        "class_focus_profiles",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("teacher_id", sa.String(length=64), nullable=False),
        sa.Column("grade", sa.Integer(), nullable=True),
        sa.Column("priority_boosts", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("window_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("window_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_modified", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index(
        "ix_class_focus_profiles_teacher",
        "class_focus_profiles",
        ["tenant_id", "teacher_id", "is_active"],
    )

    op.create_table(
        "career_unlocks",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("student_id", sa.String(length=64), nullable=False),
        sa.Column("career_id", sa.String(length=64), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("evidence", sa.JSON(), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.UniqueConstraint("student_id", "career_id", name="uq_career_unlocks_student_career"),
    )
    op.create_index("ix_career_unlocks_tenant_id", "career_unlocks", ["tenant_id"])

    op.create_table(
        "quest_attempts",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("student_id", sa.String(length=64), nullable=False),
        sa.Column("quest_id", sa.String(length=128), nullable=False),
        sa.Column("quest_type", sa.String(length=32), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False),
        sa.Column("skill_tags", sa.JSON(), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.Column("score_summary", sa.JSON(), nullable=False),
        sa.Column("grade_at_attempt", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_quest_attempts_tenant_id", "quest_attempts", ["tenant_id"])
    op.create_index("ix_quest_attempts_student_completed", "quest_attempts", ["student_id", "completed_at"])


def downgrade() -> None:
    op.drop_index("ix_quest_attempts_student_completed", table_name="quest_attempts")
    op.drop_index("ix_quest_attempts_tenant_id", table_name="quest_attempts")
    op.drop_table("quest_attempts")
    op.drop_index("ix_career_unlocks_tenant_id", table_name="career_unlocks")
    op.drop_table("career_unlocks")
    op.drop_index("ix_class_focus_profiles_teacher", table_name="class_focus_profiles")
    op.drop_table("class_focus_profiles")
    op.drop_index("ix_weekly_plans_tenant_id", table_name="weekly_plans")
    op.drop_table("weekly_plans")
    op.drop_index("ix_daily_quest_sets_tenant_id", table_name="daily_quest_sets")
    op.drop_table("daily_quest_sets")
    op.drop_index("ix_skill_scores_student_id", table_name="skill_scores")
    op.drop_index("ix_skill_scores_tenant_id", table_name="skill_scores")
    op.drop_table("skill_scores")
