from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from skillquest.careers import ActivityPerformance, default_career_catalog, evaluate_career_unlocks
from skillquest.class_focus import ClassFocusProfile, FocusWindow
from skillquest.config import get_settings
from skillquest.content import QuestScoreSummary, dump_quests, generate_daily_quests
from skillquest.db import models
from skillquest.db.base import Base
from skillquest.db.session import dispose_engine, get_engine, get_session_factory, session_scope
from skillquest.grades import SkillCategory, SkillLevel, SkillTrend
from skillquest.planner import WeeklyPlanner
from skillquest.repositories import (
    CareerUnlockRepository,
    ClassFocusRepository,
    QuestAttemptRepository,
    QuestSetStore,
    SkillScoreRepository,
    WeeklyPlanStore,
)
from skillquest.skill_scores import apply_activity_outcome
from skillquest.telemetry import TelemetryEvent, clear_listeners, register_listener

TODAY = date(2026, 3, 4)
NOW = datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    monkeypatch.setenv("SKILLQUEST_DATABASE_URL", f"sqlite:///{tmp_path / 'skillquest.sqlite'}")
    get_settings.cache_clear()
    dispose_engine()
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    dispose_engine()
    get_settings.cache_clear()


@pytest.fixture
def events():
    captured: list[TelemetryEvent] = []
    register_listener(captured.append)
    yield captured
    clear_listeners()


def test_quest_set_is_created_once_per_day(events) -> None:
    store = QuestSetStore()
    calls: list[int] = []

    def factory():
        calls.append(1)
        return generate_daily_quests("s1", TODAY, 3, 8)

    with session_scope() as session:
        first = store.get_or_create(session, "t1", "s1", TODAY, "EXPLORER", factory)
    with session_scope() as session:
        second = store.get_or_create(session, "t1", "s1", TODAY, "EXPLORER", factory)

    assert first.created is True
    assert second.created is False
    assert second.id == first.id
    assert [quest.id for quest in second.quests] == [quest.id for quest in first.quests]
    assert len(calls) == 1
    assert [event.name for event in events if event.name != "db_pool_status"] == ["quest_set_created", "quest_set_reused"]


def test_quest_sets_are_keyed_by_mode_and_day() -> None:
    store = QuestSetStore()
    factory = lambda: generate_daily_quests("s1", TODAY, 3, 8)  # noqa: E731

    with session_scope() as session:
        explorer = store.get_or_create(session, "t1", "s1", TODAY, "EXPLORER", factory)
        facilitator = store.get_or_create(session, "t1", "s1", TODAY, "FACILITATOR", factory)
        tomorrow = store.get_or_create(session, "t1", "s1", TODAY + timedelta(days=1), "EXPLORER", factory)

    assert len({explorer.id, facilitator.id, tomorrow.id}) == 3
    with session_scope() as session:
        assert store.get(session, "s1", TODAY, "EXPLORER").id == explorer.id
        assert store.get(session, "s2", TODAY, "EXPLORER") is None


def test_concurrent_create_returns_the_stored_winner() -> None:
    store = QuestSetStore()
    winner_quests = generate_daily_quests("s1", TODAY, 3, 9)

    def racing_factory():
        # Another request stores the set between our read and our insert.
        with get_session_factory()() as other:
            other.add(
                models.DailyQuestSetModel(
                    tenant_id="t1",
                    student_id="s1",
                    quest_date=TODAY,
                    mode="EXPLORER",
                    quests=dump_quests(winner_quests),
                    status="ACTIVE",
                )
            )
            other.commit()
        return generate_daily_quests("s1", TODAY, 3, 8)

    with session_scope() as session:
        result = store.get_or_create(session, "t1", "s1", TODAY, "EXPLORER", racing_factory)

    assert result.created is False
    assert [quest.model_dump() for quest in result.quests] == [quest.model_dump() for quest in winner_quests]
    with session_scope() as session:
        rows = session.query(models.DailyQuestSetModel).filter_by(student_id="s1").all()
    assert len(rows) == 1


def test_weekly_plan_is_stored_once_per_week(events) -> None:
    store = WeeklyPlanStore()
    planner = WeeklyPlanner()
    monday = date(2026, 3, 2)

    with session_scope() as session:
        first = store.get_or_create(
            session, "t1", "s1", monday, lambda: planner.plan("s1", "Doctor", 15, {}, monday, grade=9)
        )
    with session_scope() as session:
        second = store.get_or_create(
            session, "t1", "s1", monday, lambda: planner.plan("s1", "IAS", 30, {}, monday, grade=9)
        )

    assert first.created is True
    assert second.created is False
    assert second.plan.goal_title == "Doctor"
    assert second.plan.model_dump() == first.plan.model_dump()
    assert [event.name for event in events if event.name != "db_pool_status"] == ["weekly_plan_created"]


def test_skill_scores_round_trip_and_update() -> None:
    repository = SkillScoreRepository()
    first = apply_activity_outcome(None, SkillCategory.MEMORY, 0.5, "Explorer Quest: Visual Vault", NOW)

    with session_scope() as session:
        repository.save(session, "t1", "s1", {SkillCategory.MEMORY: first})
    with session_scope() as session:
        stored = repository.by_category(session, "s1")
        second = apply_activity_outcome(stored[SkillCategory.MEMORY], SkillCategory.MEMORY, 1.0, "again", NOW)
        repository.save(session, "t1", "s1", {SkillCategory.MEMORY: second})
    with session_scope() as session:
        scores = repository.for_student(session, "s1")

    assert len(scores) == 1
    memory = scores[0]
    assert memory.score == 80
    assert memory.level == SkillLevel.ADVANCED
    assert memory.trend == SkillTrend.IMPROVING
    assert memory.evidence == ["Explorer Quest: Visual Vault", "again"]
    assert [entry.score for entry in memory.history] == [60, 80]


def test_attempts_feed_weak_signals_and_activity_summary() -> None:
    attempts = QuestAttemptRepository()

    with session_scope() as session:
        attempts.record(
            session,
            tenant_id="t1",
            student_id="s1",
            quest_id="quest-a",
            quest_type="mini_game",
            mode="EXPLORER",
            skill_tags=[SkillCategory.MEMORY],
            accuracy=0.4,
            summary=QuestScoreSummary(accuracy=40),
            grade=8,
            completed_at=NOW - timedelta(days=1),
        )
        attempts.record(
            session,
            tenant_id="t1",
            student_id="s1",
            quest_id="assessment-1",
            quest_type="assessment",
            mode="ASSESSMENT",
            skill_tags=[SkillCategory.PLANNING],
            accuracy=0.9,
            completed_at=NOW - timedelta(days=3),
        )
        attempts.record(
            session,
            tenant_id="t1",
            student_id="s1",
            quest_id="activity-1",
            quest_type="activity",
            mode="ACTIVITY",
            skill_tags=[],
            completed_at=NOW - timedelta(days=30),
        )

    with session_scope() as session:
        outcomes = attempts.recent_outcomes(session, "s1", now=NOW)
        done = attempts.completed_quest_ids(session, "s1", ["quest-a", "quest-b"])
        summary = attempts.activity_summary(session, "s1")

    assert [outcome.activity_type for outcome in outcomes] == ["assessment", "mini_game"]
    assert outcomes[1].skill_tags == [SkillCategory.MEMORY]
    assert done == {"quest-a"}
    assert summary.assessment_count == 1
    assert summary.quest_count == 1
    assert summary.activity_count == 1
    assert summary.total == 3
    assert summary.activity_types == 3
    assert summary.completed_dates[-1] == date(2026, 3, 3)


def test_career_unlocks_are_recorded_once(events) -> None:
    repository = CareerUnlockRepository()
    candidates = evaluate_career_unlocks(
        [SkillCategory.COGNITIVE_REASONING],
        ActivityPerformance(accuracy=90),
        [],
        catalog=default_career_catalog(),
    )
    assert candidates

    with session_scope() as session:
        stored = repository.record(session, "t1", "s1", candidates)
    with session_scope() as session:
        again = repository.record(session, "t1", "s1", candidates)
        unlocked = repository.unlocked_ids(session, "s1")

    assert [candidate.career.id for candidate in stored] == [candidate.career.id for candidate in candidates]
    assert again == []
    assert unlocked == {candidate.career.id for candidate in candidates}
    assert [event.name for event in events].count("career_unlocked") == len(candidates)


def test_class_focus_profiles_resolve_latest_active() -> None:
    repository = ClassFocusRepository()

    with session_scope() as session:
        repository.save(
            session,
            ClassFocusProfile(
                tenant_id="t1",
                teacher_id="teacher-1",
                priority_boosts={"PLANNING": 0.1},
                updated_at=NOW - timedelta(days=2),
            ),
        )
        latest = repository.save(
            session,
            ClassFocusProfile(
                tenant_id="t1",
                teacher_id="teacher-1",
                priority_boosts={"planning": 0.5},
                updated_at=NOW - timedelta(hours=1),
            ),
        )

    with session_scope() as session:
        active = repository.active_profile(session, "t1", "teacher-1", now=NOW)
        profiles = repository.list_for_teacher(session, "t1", "teacher-1")

    assert len(profiles) == 2
    assert active is not None
    assert active.id == latest.id
    assert active.priority_boosts == {"planning": 0.5}
    assert active.boosts() == {"PLANNING": 0.5}


def test_class_focus_profile_updates_and_expiry() -> None:
    repository = ClassFocusRepository()

    with session_scope() as session:
        profile = repository.save(
            session,
            ClassFocusProfile(
                tenant_id="t1",
                teacher_id="teacher-2",
                grade=9,
                priority_boosts={"MEMORY": 0.2},
                focus_window=FocusWindow(start=NOW - timedelta(days=7), end=NOW - timedelta(days=1)),
                updated_at=NOW - timedelta(days=1),
            ),
        )

    with session_scope() as session:
        assert repository.active_profile(session, "t1", "teacher-2", 9, NOW) is None
        repository.save(
            session,
            profile.model_copy(update={"focus_window": None, "updated_at": NOW}),
        )

    with session_scope() as session:
        active = repository.active_profile(session, "t1", "teacher-2", 9, NOW)
        other_grade = repository.active_profile(session, "t1", "teacher-2", 10, NOW)

    assert active is not None and active.id == profile.id
    assert other_grade is None
