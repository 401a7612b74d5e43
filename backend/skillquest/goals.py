"""Goal skill maps: goal title to skill weights and a quest-type mix."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError
from .grades import SkillCategory

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_GOAL_MAPS_PATH = DATA_DIR / "goal_skill_maps.json"

WEIGHT_SUM_TOLERANCE = 0.01
NEUTRAL_GOAL_SCORE = 50.0

GoalResolution = Literal["exact", "case_insensitive", "keyword", "default"]


class QuestMix(BaseModel):
    """Percentages of each quest type in a goal-directed plan."""

    model_config = ConfigDict(frozen=True)

    mini_game: int = Field(..., ge=0, le=100)
    reflection: int = Field(..., ge=0, le=100)
    choice_scenario: int = Field(..., ge=0, le=100)


class GoalSkillMap(BaseModel):
    model_config = ConfigDict(frozen=True)

    goal_title: str
    skill_weights: Dict[SkillCategory, float]
    quest_mix: QuestMix


class GoalKeywordRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    goal: str
    keywords: List[str]


class GoalSkillMapTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str
    goals: Dict[str, GoalSkillMap]
    keywords: List[GoalKeywordRule] = Field(default_factory=list)
    default: GoalSkillMap


class ResolvedGoal(BaseModel):
    """A goal map together with how the title was matched."""

    goal_id: Optional[str] = None
    resolved_by: GoalResolution
    skill_map: GoalSkillMap


def _check_map(label: str, skill_map: GoalSkillMap, problems: List[str]) -> None:
    weights = skill_map.skill_weights
    if not weights:
        problems.append(f"{label} has no skill weights")
        return
    for skill, weight in weights.items():
        if weight < 0 or weight > 1:
            problems.append(f"{label} weight for {skill.value} is outside [0, 1]")
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        problems.append(f"{label} skill weights sum to {total:.2f}, expected 1.0")
    mix = skill_map.quest_mix
    mix_total = mix.mini_game + mix.reflection + mix.choice_scenario
    if mix_total != 100:
        problems.append(f"{label} quest mix sums to {mix_total}, expected 100")


def _validate_integrity(table: GoalSkillMapTable) -> None:
    problems: List[str] = []
    for goal_id, skill_map in table.goals.items():
        _check_map(f"goal '{goal_id}'", skill_map, problems)
    _check_map("default goal map", table.default, problems)
    for rule in table.keywords:
        if rule.goal not in table.goals:
            problems.append(f"keyword rule points at unknown goal '{rule.goal}'")
    if problems:
        message = "Goal skill map table failed integrity checks: " + "; ".join(problems)
        logger.error(message)
        raise ConfigurationError(message)


def load_goal_skill_maps(path: Optional[Union[str, Path]] = None) -> GoalSkillMapTable:
    """Load and validate the goal skill map table from JSON."""
    source = Path(path) if path else DEFAULT_GOAL_MAPS_PATH
    try:
        with source.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Unable to read goal skill maps %s: %s", source, exc)
        raise ConfigurationError(f"Unable to read goal skill maps {source}: {exc}") from exc

    try:
        table = GoalSkillMapTable.model_validate(raw)
    except ValidationError as exc:
        logger.error("Goal skill map table %s is invalid: %s", source, exc)
        raise ConfigurationError(f"Goal skill map table {source} is invalid: {exc}") from exc

    _validate_integrity(table)
    logger.debug("Loaded goal skill maps version %s from %s", table.version, source)
    return table


@lru_cache
def default_goal_skill_maps() -> GoalSkillMapTable:
    return load_goal_skill_maps()


def resolve_goal(goal_title: str, *, table: Optional[GoalSkillMapTable] = None) -> ResolvedGoal:
    """Exact title, then case-insensitive, then keyword heuristic, else the balanced default."""
    maps = table if table is not None else default_goal_skill_maps()
    title = goal_title or ""

    if title in maps.goals:
        return ResolvedGoal(goal_id=title, resolved_by="exact", skill_map=maps.goals[title])

    upper = title.upper()
    for goal_id, skill_map in maps.goals.items():
        if goal_id.upper() == upper:
            return ResolvedGoal(goal_id=goal_id, resolved_by="case_insensitive", skill_map=skill_map)

    lower = title.lower()
    for rule in maps.keywords:
        if any(keyword in lower for keyword in rule.keywords):
            return ResolvedGoal(goal_id=rule.goal, resolved_by="keyword", skill_map=maps.goals[rule.goal])

    fallback = maps.default.model_copy(update={"goal_title": title or maps.default.goal_title})
    return ResolvedGoal(goal_id=None, resolved_by="default", skill_map=fallback)


def resolve_goal_skill_map(goal_title: str, *, table: Optional[GoalSkillMapTable] = None) -> GoalSkillMap:
    return resolve_goal(goal_title, table=table).skill_map


def curated_goals(*, table: Optional[GoalSkillMapTable] = None) -> List[Dict[str, str]]:
    """Goal choices offered by the goal-setup wizard."""
    maps = table if table is not None else default_goal_skill_maps()
    return [{"id": goal_id, "title": skill_map.goal_title} for goal_id, skill_map in maps.goals.items()]


def _score_for(scores: Mapping[SkillCategory, float], skill: SkillCategory) -> float:
    value = scores.get(skill)
    return NEUTRAL_GOAL_SCORE if value is None else float(value)


def goal_readiness(
    goal_title: str,
    scores: Mapping[SkillCategory, float],
    *,
    table: Optional[GoalSkillMapTable] = None,
) -> int:
    """Weighted mean of skill scores under the goal's weights (0..100)."""
    skill_map = resolve_goal_skill_map(goal_title, table=table)
    weighted_sum = 0.0
    total_weight = 0.0
    for skill, weight in skill_map.skill_weights.items():
        weighted_sum += _score_for(scores, skill) * weight
        total_weight += weight
    if total_weight <= 0:
        return 0
    return int(round(weighted_sum / total_weight))


class SkillImprovementSuggestion(BaseModel):
    skill: SkillCategory
    current_score: float
    target_weight: float
    priority: float


def skill_improvement_suggestions(
    goal_title: str,
    scores: Mapping[SkillCategory, float],
    *,
    table: Optional[GoalSkillMapTable] = None,
) -> List[SkillImprovementSuggestion]:
    """High goal weight and low current score rank first."""
    skill_map = resolve_goal_skill_map(goal_title, table=table)
    suggestions = [
        SkillImprovementSuggestion(
            skill=skill,
            current_score=_score_for(scores, skill),
            target_weight=weight,
            priority=weight * (100.0 - _score_for(scores, skill)),
        )
        for skill, weight in skill_map.skill_weights.items()
    ]
    suggestions.sort(key=lambda item: item.priority, reverse=True)
    return suggestions


__all__ = [
    "DEFAULT_GOAL_MAPS_PATH",
    "GoalKeywordRule",
    "GoalResolution",
    "GoalSkillMap",
    "GoalSkillMapTable",
    "QuestMix",
    "ResolvedGoal",
    "SkillImprovementSuggestion",
    "curated_goals",
    "default_goal_skill_maps",
    "goal_readiness",
    "load_goal_skill_maps",
    "resolve_goal",
    "resolve_goal_skill_map",
    "skill_improvement_suggestions",
]
