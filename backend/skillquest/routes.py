"""HTTP endpoints over the selection, planning and gating engine."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Dict, List, Literal, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .careers import ActivityPerformance, UnlockCandidate, evaluate_career_unlocks
from .class_focus import PriorityBreakdown
from .config import EngineConfig, Settings, get_settings
from .content import (
    AnswerValue,
    MiniGameQuest,
    Quest,
    QuestModel,
    QuestScoreSummary,
    quest_questions,
    summarize_choice,
    summarize_mini_game,
    summarize_reflection,
)
from .daily_quests import build_daily_quest_set, select_quests_for_assignment
from .db.session import get_session_dependency
from .errors import ConfigurationError, QuestNotFoundError, SkillQuestError, UnknownGradeError
from .evidence import (
    ProgressNarrative,
    SupportAction,
    activity_streak,
    evaluate_evidence,
    gentle_observations,
    progress_narrative,
    support_actions,
)
from .expectations import ExpectationTable, default_expectation_table, load_expectation_table
from .goals import GoalSkillMapTable, default_goal_skill_maps, goal_readiness, load_goal_skill_maps
from .grades import SkillCategory, SkillTrend, coerce_grade, parse_grade
from .insights import CoachingInsight, QuestInsight, coaching_insight, quest_insight
from .levels import activity_xp
from .mastery import MasteryCheck, check_grade_mastery, default_mastery_requirements
from .maturity import TrendDirection, band_for_level
from .planner import WeeklyPlan, WeeklyPlanner, current_week_start
from .repositories import (
    CareerUnlockRepository,
    ClassFocusRepository,
    QuestAttemptRepository,
    QuestSetStore,
    SkillScoreRepository,
    WeeklyPlanStore,
)
from .repositories.quest_sets import EXPLORER_MODE
from .selection import compute_weak_signals
from .skill_scores import SkillScore, apply_quest_outcome, score_map, summary_accuracy
from .skill_tree import Role, SkillTreeView, skill_tree_view

router = APIRouter(prefix="/api", tags=["engine"])
logger = logging.getLogger(__name__)

skill_scores = SkillScoreRepository()
attempts = QuestAttemptRepository()
quest_sets = QuestSetStore()
weekly_plans = WeeklyPlanStore()
class_focus_profiles = ClassFocusRepository()
career_unlocks = CareerUnlockRepository()

AttemptMode = Literal["EXPLORER", "FACILITATOR", "ASSIGNMENT", "ASSESSMENT", "ACTIVITY"]
ACTIVITIES_FOR_TALENT_INSIGHTS = "Complete more activities to unlock talent insights"


@lru_cache
def _expectation_table(path: Optional[str]) -> ExpectationTable:
    return load_expectation_table(path) if path else default_expectation_table()


@lru_cache
def _goal_maps(path: Optional[str]) -> GoalSkillMapTable:
    return load_goal_skill_maps(path) if path else default_goal_skill_maps()


def get_engine_config(settings: Settings = Depends(get_settings)) -> EngineConfig:
    return settings.engine_config()


def get_expectations(settings: Settings = Depends(get_settings)) -> ExpectationTable:
    try:
        return _expectation_table(settings.expectations_path)
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def get_goal_maps(settings: Settings = Depends(get_settings)) -> GoalSkillMapTable:
    try:
        return _goal_maps(settings.goal_maps_path)
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def _today(settings: Settings) -> date:
    return datetime.now(ZoneInfo(settings.plan_timezone)).date()


def _strict_grade(value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(parse_grade(value))
    except UnknownGradeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Explorer


class ExplorerTodayRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    grade: Optional[int] = None
    day: Optional[date] = None


class ExplorerQuestStatus(BaseModel):
    quest: Quest
    status: Literal["completed", "not_started"]


class ExplorerTodayResponse(BaseModel):
    day: date
    quest_set_id: str
    created: bool
    quests: List[ExplorerQuestStatus]
    completed: int
    total: int
    progress_percent: int


@router.post("/explorer/today", response_model=ExplorerTodayResponse)
def explorer_today(
    payload: ExplorerTodayRequest,
    settings: Settings = Depends(get_settings),
    config: EngineConfig = Depends(get_engine_config),
    table: ExpectationTable = Depends(get_expectations),
    session: Session = Depends(get_session_dependency),
) -> ExplorerTodayResponse:
    if not settings.explorer_mode_enabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Explorer mode is not enabled")

    grade = coerce_grade(payload.grade)
    day = payload.day or _today(settings)
    scores = score_map(skill_scores.for_student(session, payload.student_id))
    outcomes = attempts.recent_outcomes(session, payload.student_id, window_days=config.weak_signal_window_days)

    stored = quest_sets.get_or_create(
        session,
        payload.tenant_id,
        payload.student_id,
        day,
        EXPLORER_MODE,
        lambda: build_daily_quest_set(payload.student_id, day, grade, scores, outcomes, config=config, table=table),
    )
    done = attempts.completed_quest_ids(session, payload.student_id, [quest.id for quest in stored.quests])
    total = len(stored.quests)
    return ExplorerTodayResponse(
        day=day,
        quest_set_id=stored.id,
        created=stored.created,
        quests=[
            ExplorerQuestStatus(quest=quest, status="completed" if quest.id in done else "not_started")
            for quest in stored.quests
        ],
        completed=len(done),
        total=total,
        progress_percent=round(len(done) / total * 100) if total else 0,
    )


# ---------------------------------------------------------------------------
# Facilitator


class FacilitatorWeekRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    goal_title: str = Field(..., min_length=1, max_length=160)
    time_budget_minutes: int = Field(15, ge=0, le=240)
    grade: Optional[int] = None
    week_start: Optional[date] = None


class FacilitatorWeekResponse(BaseModel):
    plan_id: str
    created: bool
    plan: WeeklyPlan
    goal_readiness: int


@router.post("/facilitator/week", response_model=FacilitatorWeekResponse)
def facilitator_week(
    payload: FacilitatorWeekRequest,
    settings: Settings = Depends(get_settings),
    config: EngineConfig = Depends(get_engine_config),
    table: ExpectationTable = Depends(get_expectations),
    goal_maps: GoalSkillMapTable = Depends(get_goal_maps),
    session: Session = Depends(get_session_dependency),
) -> FacilitatorWeekResponse:
    if not settings.facilitator_mode_enabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Facilitator mode is not enabled")

    week_start = payload.week_start or current_week_start(tz=settings.plan_timezone)
    scores = score_map(skill_scores.for_student(session, payload.student_id))
    planner = WeeklyPlanner(config=config, expectations=table, goal_maps=goal_maps)

    stored = weekly_plans.get_or_create(
        session,
        payload.tenant_id,
        payload.student_id,
        week_start,
        lambda: planner.plan(
            payload.student_id,
            payload.goal_title,
            payload.time_budget_minutes,
            scores,
            week_start,
            payload.grade,
        ),
    )
    return FacilitatorWeekResponse(
        plan_id=stored.id,
        created=stored.created,
        plan=stored.plan,
        goal_readiness=goal_readiness(stored.plan.goal_title, scores, table=goal_maps),
    )


# ---------------------------------------------------------------------------
# Teacher


class RecommendQuestsRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    teacher_id: str = Field(..., min_length=1)
    student_id: Optional[str] = None
    student_grade: Optional[int] = None
    grade_scope: Optional[int] = None
    quest_count: int = Field(3, ge=1, le=10)
    quest_types: Optional[List[Literal["mini_game", "reflection", "choice_scenario"]]] = None


class RecommendedQuest(BaseModel):
    id: str
    title: str
    type: str
    priority: float
    breakdown: Optional[PriorityBreakdown] = None


class RecommendQuestsResponse(BaseModel):
    grade: int
    class_focus_profile_id: Optional[str] = None
    quests: List[RecommendedQuest]


@router.post("/teacher/recommend-quests", response_model=RecommendQuestsResponse)
def recommend_quests(
    payload: RecommendQuestsRequest,
    settings: Settings = Depends(get_settings),
    config: EngineConfig = Depends(get_engine_config),
    table: ExpectationTable = Depends(get_expectations),
    session: Session = Depends(get_session_dependency),
) -> RecommendQuestsResponse:
    scope = _strict_grade(payload.grade_scope)
    grade = coerce_grade(scope if scope is not None else payload.student_grade)
    student_id = payload.student_id or "class"

    scores: Dict[SkillCategory, float] = {}
    weak_signals = None
    if payload.student_id:
        scores = score_map(skill_scores.for_student(session, payload.student_id))
        weak_signals = compute_weak_signals(
            attempts.recent_outcomes(session, payload.student_id, window_days=config.weak_signal_window_days),
            config=config,
        )

    profile = class_focus_profiles.active_profile(session, payload.tenant_id, payload.teacher_id, int(grade))
    ranked = select_quests_for_assignment(
        student_id,
        grade,
        payload.quest_count,
        scores,
        day=_today(settings),
        quest_types=payload.quest_types,
        class_focus=profile,
        weak_signals=weak_signals,
        config=config,
        table=table,
    )
    return RecommendQuestsResponse(
        grade=int(grade),
        class_focus_profile_id=profile.id if profile else None,
        quests=[
            RecommendedQuest(
                id=item.candidate.id,
                title=item.candidate.title,
                type=item.candidate.type,
                priority=item.final_priority,
                breakdown=item.breakdown,
            )
            for item in ranked
        ],
    )


# ---------------------------------------------------------------------------
# Parent


class ParentTalentsRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)


class TalentCard(BaseModel):
    id: str
    name: str
    explanation: str
    evidence_summary: str
    confidence: str
    support_tip: str


class LockedTalents(BaseModel):
    message: str
    activities_needed: int


class ParentTalentsResponse(BaseModel):
    global_gate_met: bool
    diversity_gate_met: bool
    total_completed_activities: int
    streak_days: int
    talents: List[TalentCard] = Field(default_factory=list)
    locked: Optional[LockedTalents] = None
    observations: List[str] = Field(default_factory=list)
    narrative: Optional[ProgressNarrative] = None
    support_actions: List[SupportAction] = Field(default_factory=list)


@router.post("/parent/talents", response_model=ParentTalentsResponse)
def parent_talents(
    payload: ParentTalentsRequest,
    settings: Settings = Depends(get_settings),
    config: EngineConfig = Depends(get_engine_config),
    session: Session = Depends(get_session_dependency),
) -> ParentTalentsResponse:
    summary = attempts.activity_summary(session, payload.student_id)
    categories = [score.category for score in skill_scores.for_student(session, payload.student_id)]
    result = evaluate_evidence(
        summary.assessment_count,
        summary.quest_count,
        summary.activity_count,
        categories,
        summary.activity_types,
        student_id=payload.student_id,
        config=config,
    )

    response = ParentTalentsResponse(
        global_gate_met=result.global_gate_met,
        diversity_gate_met=result.diversity_gate_met,
        total_completed_activities=result.total_completed_activities,
        streak_days=activity_streak(summary.completed_dates, _today(settings)),
    )
    if not result.global_gate_met:
        response.locked = LockedTalents(
            message=ACTIVITIES_FOR_TALENT_INSIGHTS,
            activities_needed=result.activities_needed,
        )
        return response

    response.talents = [
        TalentCard(
            id=signal.id,
            name=signal.name,
            explanation=signal.explanation,
            evidence_summary=signal.evidence_summary,
            confidence=signal.confidence.value,
            support_tip=f"Encourage {signal.name.lower()} through open-ended activities at home",
        )
        for signal in result.unlocked_signals
    ]
    if result.show_gentle_observations:
        response.observations = gentle_observations(result.unlocked_signals)
    if result.show_progress_narrative:
        response.narrative = progress_narrative(result.unlocked_signals)
    response.support_actions = support_actions(result.unlocked_signals)
    return response


# ---------------------------------------------------------------------------
# Outcomes


class SkillOutcomeRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    quest_id: str = Field(..., min_length=1)
    quest_title: str = Field(..., min_length=1)
    quest_type: str = Field(..., min_length=1)
    mode: AttemptMode = "EXPLORER"
    skill_tags: List[SkillCategory] = Field(default_factory=list)
    summary: QuestScoreSummary = Field(default_factory=QuestScoreSummary)
    answers: Optional[List[AnswerValue]] = None
    response: Optional[str] = None
    choice: Optional[int] = Field(None, ge=0)
    seed: Optional[str] = None
    time_spent_seconds: float = Field(0, ge=0)
    hints_used: int = Field(0, ge=0)
    questions_answered: Optional[int] = Field(None, ge=0)
    grade: Optional[int] = None
    goal_title: Optional[str] = None
    completed_at: Optional[datetime] = None


def _quest_seed(student_id: str, quest_id: str, seed: Optional[str]) -> str:
    return seed or f"{student_id}-{quest_id}"


def _stored_quest(session: Session, student_id: str, quest_id: str, mode: str) -> QuestModel:
    lookups = [quest_sets.find_quest, weekly_plans.find_quest]
    if mode == "FACILITATOR":
        lookups.reverse()
    for lookup in lookups:
        quest = lookup(session, student_id, quest_id)
        if quest is not None:
            return quest
    raise QuestNotFoundError(student_id, quest_id)


def _outcome_summary(session: Session, payload: SkillOutcomeRequest, config: EngineConfig) -> QuestScoreSummary:
    """Score raw submissions server-side; a bare ``summary`` is used only when nothing raw was sent."""
    if payload.answers is not None:
        quest = _stored_quest(session, payload.student_id, payload.quest_id, payload.mode)
        if not isinstance(quest, MiniGameQuest):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Quest {payload.quest_id} is a {quest.type} quest and takes no answers",
            )
        return summarize_mini_game(
            quest,
            _quest_seed(payload.student_id, payload.quest_id, payload.seed),
            payload.answers,
            payload.time_spent_seconds,
            payload.hints_used,
            hint_penalty=config.hint_penalty,
        )
    if payload.response is not None:
        return summarize_reflection(payload.response)
    if payload.choice is not None:
        return summarize_choice(payload.choice)
    return payload.summary


class QuestQuestionsRequest(BaseModel):
    student_id: str = Field(..., min_length=1)
    quest_id: str = Field(..., min_length=1)
    mode: AttemptMode = "EXPLORER"
    seed: Optional[str] = None


class QuestQuestionsResponse(BaseModel):
    quest_id: str
    seed: str
    questions: List[Dict[str, object]]


@router.post("/quests/questions", response_model=QuestQuestionsResponse)
def quest_questions_for_student(
    payload: QuestQuestionsRequest,
    session: Session = Depends(get_session_dependency),
) -> QuestQuestionsResponse:
    quest = _stored_quest(session, payload.student_id, payload.quest_id, payload.mode)
    seed = _quest_seed(payload.student_id, payload.quest_id, payload.seed)
    return QuestQuestionsResponse(
        quest_id=quest.id,
        seed=seed,
        questions=[
            question.model_dump(mode="json", exclude={"correct_answer"})
            for question in quest_questions(quest, seed)
        ],
    )


class SkillOutcomeResponse(BaseModel):
    updated_scores: List[SkillScore]
    summary: QuestScoreSummary
    insight: Optional[QuestInsight] = None
    coaching: Optional[CoachingInsight] = None
    career_unlocks: List[UnlockCandidate] = Field(default_factory=list)
    xp_awarded: int = 0


@router.post("/skills/outcome", response_model=SkillOutcomeResponse)
def record_skill_outcome(
    payload: SkillOutcomeRequest,
    config: EngineConfig = Depends(get_engine_config),
    goal_maps: GoalSkillMapTable = Depends(get_goal_maps),
    session: Session = Depends(get_session_dependency),
) -> SkillOutcomeResponse:
    summary = _outcome_summary(session, payload, config)
    insight: Optional[QuestInsight] = None
    coaching: Optional[CoachingInsight] = None
    if payload.mode == "FACILITATOR" and payload.goal_title:
        coaching = coaching_insight(
            payload.quest_type,
            summary,
            payload.time_spent_seconds,
            payload.hints_used,
            payload.goal_title,
            payload.skill_tags,
            goal_maps=goal_maps,
        )
    else:
        insight = quest_insight(payload.quest_type, summary, payload.time_spent_seconds, payload.hints_used)

    skills = list(payload.skill_tags) or (insight.skill_signals if insight else [])
    completed_at = payload.completed_at or datetime.now(timezone.utc)
    attempts.record(
        session,
        tenant_id=payload.tenant_id,
        student_id=payload.student_id,
        quest_id=payload.quest_id,
        quest_type=payload.quest_type,
        mode=payload.mode,
        skill_tags=skills,
        accuracy=summary_accuracy(summary),
        summary=summary,
        grade=int(coerce_grade(payload.grade)),
        completed_at=completed_at,
    )

    current = skill_scores.by_category(session, payload.student_id)
    prefix = "Facilitator Quest" if payload.mode == "FACILITATOR" else "Explorer Quest"
    updated = apply_quest_outcome(
        current,
        skills,
        payload.quest_title,
        summary,
        completed_at,
        evidence_prefix=prefix,
        config=config,
    )
    skill_scores.save(session, payload.tenant_id, payload.student_id, updated)

    unlocked: List[UnlockCandidate] = []
    if payload.mode == "EXPLORER" and skills:
        candidates = evaluate_career_unlocks(
            skills,
            ActivityPerformance.from_summary(summary, payload.time_spent_seconds),
            career_unlocks.unlocked_ids(session, payload.student_id),
        )
        unlocked = career_unlocks.record(session, payload.tenant_id, payload.student_id, candidates)

    return SkillOutcomeResponse(
        updated_scores=list(updated.values()),
        summary=summary,
        insight=insight,
        coaching=coaching,
        career_unlocks=unlocked,
        xp_awarded=activity_xp(
            summary.accuracy,
            payload.time_spent_seconds,
            payload.questions_answered if payload.answers is None else len(payload.answers),
            payload.hints_used,
        ),
    )


# ---------------------------------------------------------------------------
# Skill tree & mastery


_TREND_DIRECTIONS: Dict[SkillTrend, TrendDirection] = {
    SkillTrend.IMPROVING: "up",
    SkillTrend.STABLE: "stable",
    SkillTrend.NEEDS_ATTENTION: "down",
}


class SkillTreeRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    role: Role = "student"
    grade: Optional[int] = None


class SkillTreeResponse(BaseModel):
    skills: List[SkillTreeView]


@router.post("/skills/tree", response_model=SkillTreeResponse)
def skill_tree(
    payload: SkillTreeRequest,
    config: EngineConfig = Depends(get_engine_config),
    table: ExpectationTable = Depends(get_expectations),
    session: Session = Depends(get_session_dependency),
) -> SkillTreeResponse:
    grade = coerce_grade(payload.grade)
    views = [
        skill_tree_view(
            payload.role,
            band_for_level(score.level),
            score.score,
            _TREND_DIRECTIONS[score.trend],
            score.category,
            grade,
            tolerance=config.band_tolerance,
            table=table,
        )
        for score in skill_scores.for_student(session, payload.student_id)
    ]
    return SkillTreeResponse(skills=views)


class MasteryRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    grade: int
    end_year_assessment_completed: bool = False


@router.post("/mastery/check", response_model=MasteryCheck)
def mastery_check(
    payload: MasteryRequest,
    session: Session = Depends(get_session_dependency),
) -> MasteryCheck:
    grade = _strict_grade(payload.grade)
    summary = attempts.activity_summary(session, payload.student_id)
    scores = [score.score for score in skill_scores.for_student(session, payload.student_id)]
    return check_grade_mastery(
        default_mastery_requirements(grade),
        summary.quest_count,
        summary.assessment_count,
        scores,
        payload.end_year_assessment_completed,
    )


def skillquest_error_status(exc: SkillQuestError) -> int:
    if isinstance(exc, UnknownGradeError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, QuestNotFoundError):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = ["router", "skillquest_error_status"]
