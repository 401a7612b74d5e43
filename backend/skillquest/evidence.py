"""Evidence gating for parent-facing talent signals and narratives."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .grades import SkillCategory
from .telemetry import emit_event

logger = logging.getLogger(__name__)

GENTLE_OBSERVATIONS_MIN_SIGNALS = 1
PROGRESS_NARRATIVE_MIN_SIGNALS = 3
MAX_OBSERVATIONS = 4
MAX_SUPPORT_ACTIONS = 5


class ConfidenceBand(str, Enum):
    EMERGING = "EMERGING"
    MODERATE = "MODERATE"
    STRONG = "STRONG"


_CONFIDENCE_RANK: Dict[ConfidenceBand, int] = {
    ConfidenceBand.STRONG: 3,
    ConfidenceBand.MODERATE: 2,
    ConfidenceBand.EMERGING: 1,
}


class TalentSignal(BaseModel):
    """A candidate parent-facing strength; confidence is derived when gated."""

    id: str
    name: str
    explanation: str = ""
    evidence_summary: str = ""
    min_obs: int = Field(..., ge=0)
    min_contexts: int = Field(..., ge=0)
    stability_threshold: float = Field(..., ge=0.0, le=1.0)
    observed_count: int = Field(0, ge=0)
    contexts_count: int = Field(0, ge=0)
    stability_score: float = Field(0.0, ge=0.0, le=1.0)
    support_actions: List[str] = Field(default_factory=list)
    confidence: ConfidenceBand = ConfidenceBand.EMERGING


def global_gate_met(total_completed_activities: int, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> bool:
    return total_completed_activities >= config.global_gate_min_activities


def diversity_gate_met(
    activity_types: int,
    skill_branches: int,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> bool:
    return (
        activity_types >= config.diversity_min_activity_types
        or skill_branches >= config.diversity_min_skill_branches
    )


def meets_thresholds(signal: TalentSignal) -> bool:
    return (
        signal.observed_count >= signal.min_obs
        and signal.contexts_count >= signal.min_contexts
        and signal.stability_score >= signal.stability_threshold
    )


def confidence_band(
    signal: TalentSignal,
    total_completed_activities: int,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> ConfidenceBand:
    if not meets_thresholds(signal):
        return ConfidenceBand.EMERGING
    if total_completed_activities >= config.strong_confidence_min_activities:
        return ConfidenceBand.STRONG
    return ConfidenceBand.MODERATE


class GateResult(BaseModel):
    unlocked: List[TalentSignal] = Field(default_factory=list)
    locked: List[TalentSignal] = Field(default_factory=list)


def gate_talent_signals(
    signals: Sequence[TalentSignal],
    total_completed_activities: int,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> GateResult:
    """Split signals into unlocked and locked.

    Nothing unlocks below the global gate. Unlocked signals are ordered
    STRONG, MODERATE, EMERGING (stable within a tier) and capped. Passing
    signals past the cap are dropped from both lists; ``locked`` only holds
    signals that miss their own thresholds.
    """
    rated = [
        signal.model_copy(update={"confidence": confidence_band(signal, total_completed_activities, config)})
        for signal in signals
    ]
    if not global_gate_met(total_completed_activities, config):
        return GateResult(unlocked=[], locked=rated)

    passing = [signal for signal in rated if meets_thresholds(signal)]
    passing.sort(key=lambda signal: _CONFIDENCE_RANK[signal.confidence], reverse=True)
    return GateResult(
        unlocked=passing[: config.max_surfaced_signals],
        locked=[signal for signal in rated if not meets_thresholds(signal)],
    )


def _moderate_or_better(signals: Iterable[TalentSignal]) -> int:
    return sum(
        1 for signal in signals if signal.confidence in (ConfidenceBand.MODERATE, ConfidenceBand.STRONG)
    )


def can_show_gentle_observations(gate_met: bool, unlocked: Sequence[TalentSignal]) -> bool:
    return gate_met and _moderate_or_better(unlocked) >= GENTLE_OBSERVATIONS_MIN_SIGNALS


def can_show_progress_narrative(gate_met: bool, unlocked: Sequence[TalentSignal]) -> bool:
    return gate_met and _moderate_or_better(unlocked) >= PROGRESS_NARRATIVE_MIN_SIGNALS


def evidence_summary(observed_count: int, contexts_count: int) -> str:
    if contexts_count >= 3:
        return f"observed across {observed_count} activities in {contexts_count} different contexts"
    return f"observed across {observed_count} activities"


def generate_talent_signals(
    assessment_count: int,
    quest_count: int,
    activity_count: int,
    skill_categories: Iterable[Union[SkillCategory, str]],
) -> List[TalentSignal]:
    """Candidate signals for the skills a student has been scored on."""
    present = {SkillCategory(str(getattr(value, "value", value))) for value in skill_categories}
    signals: List[TalentSignal] = []

    if SkillCategory.COGNITIVE_REASONING in present:
        observed = assessment_count + quest_count
        signals.append(
            TalentSignal(
                id="pattern-recognition",
                name="Pattern Recognition",
                explanation="Shows ability to identify patterns and sequences",
                evidence_summary=evidence_summary(observed, 2),
                min_obs=5,
                min_contexts=2,
                stability_threshold=0.6,
                observed_count=observed,
                contexts_count=2,
                stability_score=0.7,
                support_actions=[
                    "Encourage puzzle games and pattern-based activities",
                    "Notice when they naturally spot patterns in daily life",
                ],
            )
        )

    if SkillCategory.CREATIVITY in present:
        observed = quest_count + activity_count
        signals.append(
            TalentSignal(
                id="creative-problem-solving",
                name="Creative Problem-Solving",
                explanation="Demonstrates creative approaches to challenges",
                evidence_summary=evidence_summary(observed, 3),
                min_obs=5,
                min_contexts=2,
                stability_threshold=0.6,
                observed_count=observed,
                contexts_count=3,
                stability_score=0.65,
                support_actions=[
                    "Provide open-ended challenges that allow multiple solutions",
                    "Celebrate creative approaches, not just correct answers",
                ],
            )
        )

    if SkillCategory.PLANNING in present:
        signals.append(
            TalentSignal(
                id="planning-organization",
                name="Planning & Organization",
                explanation="Shows ability to organize thoughts and plan ahead",
                evidence_summary=evidence_summary(activity_count, 2),
                min_obs=5,
                min_contexts=2,
                stability_threshold=0.6,
                observed_count=activity_count,
                contexts_count=2,
                stability_score=0.6,
                support_actions=[
                    "Help break down larger tasks into smaller steps",
                    "Model planning by talking through your own process",
                ],
            )
        )

    return signals


_OBSERVATIONS: Dict[str, str] = {
    "pattern-recognition": "We're noticing a preference for visual-spatial tasks over text-heavy activities",
    "creative-problem-solving": (
        "Across several activities, there's a pattern of persistence when the challenge feels personally meaningful"
    ),
    "planning-organization": "We're seeing early signs of planning behavior, especially when given clear goals",
}


def gentle_observations(signals: Sequence[TalentSignal]) -> List[str]:
    """Descriptive observations only; no advice."""
    present = {signal.id for signal in signals}
    observations = [text for signal_id, text in _OBSERVATIONS.items() if signal_id in present]
    return observations[:MAX_OBSERVATIONS]


class ProgressNarrative(BaseModel):
    then: str
    now: str
    next: str


def progress_narrative(signals: Sequence[TalentSignal]) -> ProgressNarrative:
    confident = [
        signal.name.lower()
        for signal in signals
        if signal.confidence in (ConfidenceBand.MODERATE, ConfidenceBand.STRONG)
    ]
    focus = " and ".join(confident) if confident else "the skills they practice most"
    return ProgressNarrative(
        then="Early activities showed curiosity and willingness to try new things",
        now=f"Current patterns indicate growing confidence in {focus}",
        next="The system is focusing on building consistency in planning and metacognitive reflection",
    )


class SupportAction(BaseModel):
    action: str
    mapped_to_signal: str
    low_effort: bool = True


def support_actions(signals: Sequence[TalentSignal]) -> List[SupportAction]:
    actions = [
        SupportAction(action=signal.support_actions[0], mapped_to_signal=signal.id)
        for signal in list(signals)[:MAX_SUPPORT_ACTIONS]
        if signal.support_actions
    ]
    return actions[:MAX_SUPPORT_ACTIONS]


def activity_streak(completed: Iterable[Union[date, datetime]], today: date) -> int:
    """Consecutive days with activity, ending today or yesterday."""
    days = sorted(
        {value.date() if isinstance(value, datetime) else value for value in completed},
        reverse=True,
    )
    if not days:
        return 0
    if days[0] not in (today, today - timedelta(days=1)):
        return 0
    streak = 1
    current = days[0]
    for previous in days[1:]:
        if (current - previous).days == 1:
            streak += 1
            current = previous
        else:
            break
    return streak


class EvidenceGateResult(BaseModel):
    global_gate_met: bool
    diversity_gate_met: bool
    total_completed_activities: int
    activity_types: int
    skill_branches: int
    unlocked_signals: List[TalentSignal] = Field(default_factory=list)
    locked_signals: List[TalentSignal] = Field(default_factory=list)
    show_gentle_observations: bool = False
    show_progress_narrative: bool = False
    activities_needed: int = 0


def evaluate_evidence(
    assessment_count: int,
    quest_count: int,
    activity_count: int,
    skill_categories: Iterable[Union[SkillCategory, str]],
    activity_types: int,
    *,
    student_id: Optional[str] = None,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> EvidenceGateResult:
    categories = list(skill_categories)
    total = assessment_count + quest_count + activity_count
    skill_branches = len({str(getattr(value, "value", value)) for value in categories})
    gate = global_gate_met(total, config)
    signals = generate_talent_signals(assessment_count, quest_count, activity_count, categories)
    gated = gate_talent_signals(signals, total, config)

    result = EvidenceGateResult(
        global_gate_met=gate,
        diversity_gate_met=diversity_gate_met(activity_types, skill_branches, config),
        total_completed_activities=total,
        activity_types=activity_types,
        skill_branches=skill_branches,
        unlocked_signals=gated.unlocked,
        locked_signals=gated.locked,
        show_gentle_observations=can_show_gentle_observations(gate, gated.unlocked),
        show_progress_narrative=can_show_progress_narrative(gate, gated.unlocked),
        activities_needed=max(0, config.global_gate_min_activities - total),
    )
    emit_event(
        "evidence_gate_evaluated",
        student_id=student_id,
        total_completed_activities=total,
        global_gate_met=gate,
        unlocked=[signal.id for signal in gated.unlocked],
    )
    return result


__all__ = [
    "ConfidenceBand",
    "EvidenceGateResult",
    "GateResult",
    "ProgressNarrative",
    "SupportAction",
    "TalentSignal",
    "activity_streak",
    "can_show_gentle_observations",
    "can_show_progress_narrative",
    "confidence_band",
    "diversity_gate_met",
    "evaluate_evidence",
    "evidence_summary",
    "gate_talent_signals",
    "generate_talent_signals",
    "gentle_observations",
    "global_gate_met",
    "meets_thresholds",
    "progress_narrative",
    "support_actions",
]
