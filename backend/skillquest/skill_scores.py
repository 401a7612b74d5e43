"""Per-student skill scores and their update after a completed activity."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .content import QuestScoreSummary, round_half_up
from .grades import SkillCategory, SkillLevel, SkillTrend, level_for_score

logger = logging.getLogger(__name__)

MAX_SCORE = 100.0
MIN_SCORE = 0.0
DEFAULT_ACCURACY = 0.5


def clamp_score(value: float) -> float:
    return min(MAX_SCORE, max(MIN_SCORE, float(value)))


class SkillScoreHistoryEntry(BaseModel):
    date: datetime
    score: float


class SkillScore(BaseModel):
    """Current score for one skill of one student, with provenance and history."""

    category: SkillCategory
    score: float = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    level: SkillLevel
    trend: SkillTrend = SkillTrend.STABLE
    evidence: List[str] = Field(default_factory=list)
    history: List[SkillScoreHistoryEntry] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_score(value)


class ActivityOutcome(BaseModel):
    """A completed activity as seen by weak-signal detection."""

    activity_type: Optional[str] = None
    skill_tags: List[SkillCategory] = Field(default_factory=list)
    accuracy: Optional[float] = None
    completed_at: datetime


def normalize_accuracy(value: Optional[float]) -> float:
    """Accept a fraction (<= 1) or a percentage and return a fraction in [0, 1]."""
    if value is None:
        return DEFAULT_ACCURACY
    numeric = float(value)
    if numeric > 1:
        numeric = numeric / 100.0
    return min(1.0, max(0.0, numeric))


def _percent_fraction(percent: float) -> float:
    return min(1.0, max(0.0, percent / 100.0))


def summary_accuracy(summary: QuestScoreSummary) -> float:
    """Accuracy credited to skills for a quest: mini-game accuracy, else reflection quality, else neutral.

    Both summary fields are integer percentages, so 1 means 1%, not a fraction.
    """
    if summary.accuracy is not None:
        return _percent_fraction(summary.accuracy)
    if summary.response_quality is not None:
        return _percent_fraction(summary.response_quality)
    return DEFAULT_ACCURACY


def apply_activity_outcome(
    existing: Optional[SkillScore],
    skill: SkillCategory,
    normalized_accuracy: float,
    evidence: str,
    now: Optional[datetime] = None,
    *,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> SkillScore:
    """Return the updated score; evidence and history are appended, never replaced."""
    timestamp = now or datetime.now(timezone.utc)
    delta = round_half_up(normalize_accuracy(normalized_accuracy) * config.skill_score_max_delta)
    base = existing.score if existing is not None else config.neutral_skill_score
    new_score = clamp_score(base + delta)

    if existing is None:
        trend = SkillTrend.IMPROVING
        prior_evidence: List[str] = []
        prior_history: List[SkillScoreHistoryEntry] = []
    else:
        if new_score > existing.score:
            trend = SkillTrend.IMPROVING
        elif new_score < existing.score:
            trend = SkillTrend.NEEDS_ATTENTION
        else:
            trend = SkillTrend.STABLE
        prior_evidence = list(existing.evidence)
        prior_history = list(existing.history)

    updated = SkillScore(
        category=skill,
        score=new_score,
        level=level_for_score(new_score),
        trend=trend,
        evidence=[*prior_evidence, evidence],
        history=[*prior_history, SkillScoreHistoryEntry(date=timestamp, score=new_score)],
    )
    logger.debug(
        "Skill %s moved from %s to %s (delta %s)",
        skill.value,
        existing.score if existing else None,
        new_score,
        delta,
    )
    return updated


def apply_quest_outcome(
    scores: Mapping[SkillCategory, SkillScore],
    skills: Iterable[SkillCategory],
    quest_title: str,
    summary: QuestScoreSummary,
    now: Optional[datetime] = None,
    *,
    evidence_prefix: str = "Facilitator Quest",
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> Dict[SkillCategory, SkillScore]:
    """Update every skill a completed quest targets; returns only the changed scores."""
    accuracy = summary_accuracy(summary)
    updated: Dict[SkillCategory, SkillScore] = {}
    for skill in dict.fromkeys(skills):
        updated[skill] = apply_activity_outcome(
            scores.get(skill),
            skill,
            accuracy,
            f"{evidence_prefix}: {quest_title}",
            now,
            config=config,
        )
    return updated


def score_map(scores: Iterable[SkillScore]) -> Dict[SkillCategory, float]:
    return {score.category: score.score for score in scores}


__all__ = [
    "ActivityOutcome",
    "SkillScore",
    "SkillScoreHistoryEntry",
    "apply_activity_outcome",
    "apply_quest_outcome",
    "clamp_score",
    "normalize_accuracy",
    "score_map",
    "summary_accuracy",
]
