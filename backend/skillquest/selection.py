"""Priority scoring and grade-aware selection of candidate activities."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Generic, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, TypeVar

from .class_focus import PriorityBreakdown, log_priority_debug, priority_breakdown
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .expectations import ExpectationTable, emphasis_weight
from .grades import Grade, SkillCategory, is_applicable_to_grade, is_universal
from .skill_scores import ActivityOutcome, normalize_accuracy

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class Candidate(Protocol):
    id: str
    title: str
    primary_skills: List[SkillCategory]
    grade_applicability: List[int]


CandidateT = TypeVar("CandidateT", bound=Candidate)


@dataclass(frozen=True)
class RankedCandidate(Generic[CandidateT]):
    candidate: CandidateT
    index: int
    base_priority: float
    weak_signal_term: float
    breakdown: Optional[PriorityBreakdown]
    final_priority: float


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_weak_signals(
    outcomes: Iterable[ActivityOutcome],
    now: Optional[datetime] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> Dict[SkillCategory, float]:
    """Recency-weighted ``1 - accuracy`` totals per skill over the look-back window."""
    moment = _aware(now or datetime.now(timezone.utc))
    signals: Dict[SkillCategory, float] = {}
    for outcome in outcomes:
        if not outcome.skill_tags:
            continue
        elapsed = (moment - _aware(outcome.completed_at)).total_seconds()
        if elapsed > config.weak_signal_window_days * SECONDS_PER_DAY:
            continue
        days_ago = math.floor(elapsed / SECONDS_PER_DAY)
        weight = (
            config.weak_signal_recent_weight
            if days_ago <= config.weak_signal_recent_days
            else config.weak_signal_older_weight
        )
        accuracy = normalize_accuracy(outcome.accuracy if outcome.accuracy is not None else 0.0)
        strength = 1.0 - accuracy
        for skill in outcome.skill_tags:
            signals[skill] = signals.get(skill, 0.0) + strength * weight
    return signals


def filter_by_grade(candidates: Sequence[CandidateT], grade: Grade) -> List[Tuple[int, CandidateT]]:
    """Keep candidates applicable to ``grade``; an empty result falls back to universal ones."""
    indexed = list(enumerate(candidates))
    applicable = [(index, item) for index, item in indexed if is_applicable_to_grade(item.grade_applicability, grade)]
    if applicable:
        return applicable
    universal = [(index, item) for index, item in indexed if is_universal(item.grade_applicability)]
    if universal:
        logger.debug("No candidates matched grade %s; using %s universal candidates", int(grade), len(universal))
    return universal


def _score(scores: Mapping[SkillCategory, float], skill: SkillCategory, config: EngineConfig) -> float:
    value = scores.get(skill)
    return config.neutral_skill_score if value is None else float(value)


def base_priority(
    candidate: Candidate,
    grade: Grade,
    scores: Mapping[SkillCategory, float],
    *,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    table: Optional[ExpectationTable] = None,
) -> float:
    """Sum over primary skills of ``emphasis(grade, skill) * (100 - score)``."""
    total = 0.0
    for skill in candidate.primary_skills:
        total += emphasis_weight(grade, skill, table=table) * (100.0 - _score(scores, skill, config))
    return total


def weak_signal_term(
    candidate: Candidate,
    weak_signals: Optional[Mapping[SkillCategory, float]],
    *,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> float:
    if not weak_signals:
        return 0.0
    return sum(weak_signals.get(skill, 0.0) for skill in candidate.primary_skills) * config.weak_signal_multiplier


def rank_candidates(
    candidates: Sequence[CandidateT],
    grade: Grade,
    scores: Mapping[SkillCategory, float],
    *,
    weak_signals: Optional[Mapping[SkillCategory, float]] = None,
    boosts: Optional[Mapping[str, float]] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    table: Optional[ExpectationTable] = None,
) -> List[RankedCandidate[CandidateT]]:
    """Filter by grade, score, apply class focus, and order by final priority.

    Ties keep the original candidate order. The class focus boost uses the
    last primary skill a candidate lists.
    """
    ranked: List[RankedCandidate[CandidateT]] = []
    for index, candidate in filter_by_grade(candidates, grade):
        base = base_priority(candidate, grade, scores, config=config, table=table)
        weak = weak_signal_term(candidate, weak_signals, config=config)
        priority = base + weak
        breakdown: Optional[PriorityBreakdown] = None
        if boosts and candidate.primary_skills:
            breakdown = priority_breakdown(priority, candidate.primary_skills[-1], boosts, cap=config.class_focus_cap)
            priority = max(priority, breakdown.final_priority)
        ranked.append(
            RankedCandidate(
                candidate=candidate,
                index=index,
                base_priority=base,
                weak_signal_term=weak,
                breakdown=breakdown,
                final_priority=priority,
            )
        )

    ranked.sort(key=lambda item: (-item.final_priority, item.index))

    if config.debug_class_focus and boosts:
        log_priority_debug(
            [(item.candidate.title, item.breakdown) for item in ranked if item.breakdown is not None]
        )
    return ranked


def select_candidates(
    candidates: Sequence[CandidateT],
    grade: Grade,
    scores: Mapping[SkillCategory, float],
    count: int,
    *,
    weak_signals: Optional[Mapping[SkillCategory, float]] = None,
    boosts: Optional[Mapping[str, float]] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    table: Optional[ExpectationTable] = None,
) -> List[RankedCandidate[CandidateT]]:
    ranked = rank_candidates(
        candidates,
        grade,
        scores,
        weak_signals=weak_signals,
        boosts=boosts,
        config=config,
        table=table,
    )
    return ranked[: max(0, count)]


def select(
    candidates: Sequence[CandidateT],
    grade: Grade,
    scores: Mapping[SkillCategory, float],
    count: int,
    **kwargs: object,
) -> List[CandidateT]:
    """Top ``count`` candidates in priority order."""
    return [item.candidate for item in select_candidates(candidates, grade, scores, count, **kwargs)]  # type: ignore[arg-type]


__all__ = [
    "Candidate",
    "RankedCandidate",
    "base_priority",
    "compute_weak_signals",
    "filter_by_grade",
    "rank_candidates",
    "select",
    "select_candidates",
    "weak_signal_term",
]
