"""Goal-aligned weekly planner for facilitator-mode students."""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional, Union
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .content import (
    ChoiceScenarioQuest,
    MiniGameQuest,
    Quest,
    QuestModel,
    ReflectionQuest,
    round_half_up,
)
from .expectations import ExpectationTable, emphasis_weight
from .goals import GoalSkillMap, GoalSkillMapTable, resolve_goal
from .grades import Grade, SkillCategory, coerce_grade
from .selection import filter_by_grade

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7
FOCUS_SKILL_COUNT = 3
MAX_WEEKLY_READINESS_DELTA = 5.0
DEFAULT_PLAN_TIMEZONE = "Asia/Kolkata"

# mini_game / choice_scenario share; reflection takes the remainder.
GRADE_QUEST_MIX: Dict[Grade, Dict[str, float]] = {
    Grade.EIGHT: {"mini_game": 0.40, "choice_scenario": 0.30, "reflection": 0.30},
    Grade.NINE: {"mini_game": 0.50, "choice_scenario": 0.25, "reflection": 0.25},
    Grade.TEN: {"mini_game": 0.60, "choice_scenario": 0.25, "reflection": 0.15},
}

GRADE_QUEST_MINUTES: Dict[Grade, Dict[str, int]] = {
    Grade.EIGHT: {"mini_game": 5, "reflection": 3, "choice_scenario": 4},
    Grade.NINE: {"mini_game": 6, "reflection": 4, "choice_scenario": 5},
    Grade.TEN: {"mini_game": 7, "reflection": 4, "choice_scenario": 6},
}

GRADE_CONSTRAINTS: Dict[Grade, List[str]] = {
    Grade.EIGHT: ["no_timer", "simple_steps"],
    Grade.NINE: ["occasional_timer", "moderate_steps", "planning_prompts"],
    Grade.TEN: ["frequent_timer", "mixed_skills", "endurance_sets"],
}

GRADE_QUESTION_COUNT: Dict[Grade, int] = {Grade.EIGHT: 6, Grade.NINE: 7, Grade.TEN: 8}

FACILITATOR_GAME_ID = "pattern_forge"

_REFLECTION_TEMPLATES: Dict[Grade, str] = {
    Grade.EIGHT: "What did you learn today about {skill}? How might you use this in the future?",
    Grade.NINE: "Reflect on a challenge you faced today related to {skill}. What strategies did you use?",
    Grade.TEN: (
        "Think about your learning process today with {skill}. How did you approach it, and what "
        "patterns did you notice?"
    ),
}

_SCENARIO_TEMPLATES: Dict[Grade, Dict[str, object]] = {
    Grade.EIGHT: {
        "scenario": "You're working on a group project and notice a teammate struggling with {skill}. What do you do?",
        "choices": [
            "Offer to help them understand the concept",
            "Focus on your own work and let them figure it out",
            "Suggest they ask the teacher for help",
            "Work together to find a solution that helps everyone",
        ],
    },
    Grade.NINE: {
        "scenario": "You notice a classmate being excluded from a group activity related to {skill}. How do you respond?",
        "choices": [
            "Invite them to join your group",
            "Talk to a teacher about the situation",
            "Observe and see if the situation resolves itself",
            "Address the group directly about inclusion",
        ],
    },
    Grade.TEN: {
        "scenario": "You discover that a friend has been copying your work related to {skill}. How do you handle this?",
        "choices": [
            "Confront them directly about academic integrity",
            "Offer to help them understand the material instead",
            "Report it to the teacher",
            "Have a private conversation about the importance of learning",
        ],
    },
}


class SkillPriority(BaseModel):
    skill: SkillCategory
    goal_weight: float
    grade_emphasis: float
    current_score: float
    priority: float


class DailyPlan(BaseModel):
    day_index: int
    day: date
    quests: List[Quest] = Field(default_factory=list)


class WeeklyPlan(BaseModel):
    goal_title: str
    grade: int
    week_start: date
    week_end: date
    focus_skills: List[SkillCategory]
    daily_time_budget: int
    daily_plan: List[DailyPlan]
    goal_readiness_delta: float
    skill_priorities: List[SkillPriority] = Field(default_factory=list)


def current_week_start(now: Optional[datetime] = None, tz: str = DEFAULT_PLAN_TIMEZONE) -> date:
    """Monday of the current week in ``tz``."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(tz)).date()
    return local - timedelta(days=local.weekday())


def quest_type_counts(quest_count: int, grade: Grade) -> Dict[str, int]:
    mix = GRADE_QUEST_MIX.get(grade, GRADE_QUEST_MIX[Grade.EIGHT])
    if quest_count <= 0:
        return {"mini_game": 0, "reflection": 0, "choice_scenario": 0}
    mini = round_half_up(mix["mini_game"] * quest_count)
    scenario = round_half_up(mix["choice_scenario"] * quest_count)
    reflection = max(0, quest_count - mini - scenario)
    return {"mini_game": mini, "reflection": reflection, "choice_scenario": scenario}


class WeeklyPlanner:
    """Expands a goal into a focus-skill set and a seven-day quest plan."""

    def __init__(
        self,
        *,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        expectations: Optional[ExpectationTable] = None,
        goal_maps: Optional[GoalSkillMapTable] = None,
    ) -> None:
        self._config = config
        self._expectations = expectations
        self._goal_maps = goal_maps

    def skill_priorities(
        self,
        skill_map: GoalSkillMap,
        scores: Mapping[SkillCategory, float],
        grade: Grade,
    ) -> List[SkillPriority]:
        priorities: List[SkillPriority] = []
        for skill, weight in skill_map.skill_weights.items():
            grade_emphasis = emphasis_weight(grade, skill, table=self._expectations)
            raw = scores.get(skill)
            current = self._config.neutral_skill_score if raw is None else float(raw)
            priorities.append(
                SkillPriority(
                    skill=skill,
                    goal_weight=weight,
                    grade_emphasis=grade_emphasis,
                    current_score=current,
                    priority=weight * (1 + grade_emphasis) * (100.0 - current),
                )
            )
        priorities.sort(key=lambda item: item.priority, reverse=True)
        return priorities

    def plan(
        self,
        student_id: str,
        goal_title: str,
        time_budget_minutes: int,
        scores: Mapping[SkillCategory, float],
        week_start: date,
        grade: Optional[Union[Grade, int]] = None,
    ) -> WeeklyPlan:
        """Build the week starting at ``week_start``; ``time_budget_minutes`` is per day."""
        resolved_grade = coerce_grade(grade)
        resolved = resolve_goal(goal_title, table=self._goal_maps)
        logger.debug("Goal '%s' resolved by %s to %s", goal_title, resolved.resolved_by, resolved.goal_id)

        priorities = self.skill_priorities(resolved.skill_map, scores, resolved_grade)
        top = priorities[:FOCUS_SKILL_COUNT]
        focus_skills = [item.skill for item in top]

        daily_plan = [
            DailyPlan(
                day_index=offset,
                day=week_start + timedelta(days=offset),
                quests=self.daily_quests(
                    student_id,
                    week_start + timedelta(days=offset),
                    focus_skills,
                    time_budget_minutes,
                    resolved_grade,
                ),
            )
            for offset in range(DAYS_PER_WEEK)
        ]

        average_priority = sum(item.priority for item in top) / len(top) if top else 0.0
        return WeeklyPlan(
            goal_title=goal_title,
            grade=int(resolved_grade),
            week_start=week_start,
            week_end=week_start + timedelta(days=DAYS_PER_WEEK - 1),
            focus_skills=focus_skills,
            daily_time_budget=time_budget_minutes,
            daily_plan=daily_plan,
            goal_readiness_delta=min(MAX_WEEKLY_READINESS_DELTA, average_priority / 20),
            skill_priorities=priorities,
        )

    def daily_quests(
        self,
        student_id: str,
        day: date,
        focus_skills: List[SkillCategory],
        time_budget_minutes: int,
        grade: Grade,
    ) -> List[QuestModel]:
        quest_count = max(0, time_budget_minutes // self._config.minutes_per_quest)
        if quest_count == 0 or not focus_skills:
            return []

        counts = quest_type_counts(quest_count, grade)
        quest_types: List[str] = (
            ["mini_game"] * counts["mini_game"]
            + ["reflection"] * counts["reflection"]
            + ["choice_scenario"] * counts["choice_scenario"]
        )
        random.Random(f"{student_id}/{day.isoformat()}").shuffle(quest_types)

        templates = [
            self._build_quest(student_id, day, index, quest_type, focus_skills[index % len(focus_skills)], grade)
            for index, quest_type in enumerate(quest_types)
        ]
        applicable = [quest for _, quest in filter_by_grade(templates, grade)]
        return applicable[:quest_count]

    def _build_quest(
        self,
        student_id: str,
        day: date,
        index: int,
        quest_type: str,
        skill: SkillCategory,
        grade: Grade,
    ) -> QuestModel:
        label = skill.display_name
        common = {
            "id": f"facilitator-quest-{student_id}-{day.isoformat()}-{index}",
            "estimated_minutes": GRADE_QUEST_MINUTES[grade][quest_type],
            "skill_signals": [skill],
            "primary_skills": [skill],
            "skill_focus": [skill],
            "constraints": list(GRADE_CONSTRAINTS[grade]),
        }
        if quest_type == "mini_game":
            return MiniGameQuest(
                title=f"Skill Builder: {label}",
                description=f"Practice {label} through a quick challenge",
                game_id=FACILITATOR_GAME_ID,
                question_count=GRADE_QUESTION_COUNT[grade],
                **common,
            )
        if quest_type == "reflection":
            template = _REFLECTION_TEMPLATES.get(grade, _REFLECTION_TEMPLATES[Grade.EIGHT])
            return ReflectionQuest(
                title=f"Reflect: {label}",
                description=f"Think about how you've been developing {label}",
                prompt=template.format(skill=label),
                **common,
            )
        scenario = _SCENARIO_TEMPLATES.get(grade, _SCENARIO_TEMPLATES[Grade.EIGHT])
        return ChoiceScenarioQuest(
            title=f"Scenario: {label}",
            description=f"Explore a situation that tests your {label}",
            scenario=str(scenario["scenario"]).format(skill=label),
            choices=list(scenario["choices"]),  # type: ignore[arg-type]
            **common,
        )


__all__ = [
    "DailyPlan",
    "GRADE_QUEST_MIX",
    "SkillPriority",
    "WeeklyPlan",
    "WeeklyPlanner",
    "current_week_start",
    "quest_type_counts",
]
