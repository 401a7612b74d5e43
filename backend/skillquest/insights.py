"""Template-driven feedback for completed quests."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from .content import QuestScoreSummary, round_half_up
from .goals import GoalSkillMapTable, resolve_goal
from .grades import SkillCategory

logger = logging.getLogger(__name__)

QUICK_DECISION_SECONDS = 180
DETAILED_REFLECTION_LENGTH = 100


class QuestInsight(BaseModel):
    strength_observed: str
    growth_suggestion: str
    evidence: List[str] = Field(default_factory=list)
    skill_signals: List[SkillCategory] = Field(default_factory=list)


class CoachingInsight(BaseModel):
    strength_observed: str
    improvement_tip: str
    evidence: List[str] = Field(default_factory=list)
    skill_signals: List[SkillCategory] = Field(default_factory=list)
    goal_alignment: str


def _dedupe(skills: Sequence[SkillCategory]) -> List[SkillCategory]:
    return list(dict.fromkeys(skills))


def _accuracy(summary: Optional[QuestScoreSummary]) -> int:
    if summary is None or summary.accuracy is None:
        return 0
    return summary.accuracy


def _response_length(summary: Optional[QuestScoreSummary]) -> int:
    if summary is None or summary.response_length is None:
        return 0
    return summary.response_length


def _mini_game_evidence(accuracy: int, time_spent_seconds: float, hints_used: int) -> List[str]:
    if accuracy >= 80:
        evidence = [f"Achieved {accuracy}% accuracy"]
    elif accuracy >= 60:
        evidence = [f"Completed with {accuracy}% accuracy"]
    else:
        evidence = ["Completed the challenge"]
    if time_spent_seconds < QUICK_DECISION_SECONDS:
        evidence.append(f"Quick decision-making ({round_half_up(time_spent_seconds)}s)")
    if hints_used == 0:
        evidence.append("Worked independently")
    return evidence


def quest_insight(
    quest_type: str,
    summary: Optional[QuestScoreSummary],
    time_spent_seconds: float = 0,
    hints_used: int = 0,
) -> QuestInsight:
    """Strength, suggestion and evidence for an explorer quest."""
    accuracy = _accuracy(summary)
    skills: List[SkillCategory] = []

    if quest_type == "mini_game":
        if accuracy >= 80:
            strength = "Strong problem-solving skills"
        elif accuracy >= 60:
            strength = "Solid problem-solving approach"
        else:
            strength = "Persistent effort in problem-solving"
        evidence = _mini_game_evidence(accuracy, time_spent_seconds, hints_used)
        skills.append(SkillCategory.COGNITIVE_REASONING)
        if time_spent_seconds < QUICK_DECISION_SECONDS:
            skills.append(SkillCategory.ATTENTION)
        if hints_used == 0:
            skills.append(SkillCategory.METACOGNITION)
        suggestion = (
            "Continue exploring more complex challenges"
            if accuracy >= 80
            else "Practice with similar challenges to build confidence"
        )
    elif quest_type == "reflection":
        if _response_length(summary) > DETAILED_REFLECTION_LENGTH:
            strength, evidence = "Thoughtful self-reflection", ["Provided detailed reflection"]
        else:
            strength, evidence = "Willingness to reflect", ["Engaged with reflection prompt"]
        skills.append(SkillCategory.METACOGNITION)
        suggestion = "Continue reflecting on your learning journey to build self-awareness"
    elif quest_type == "choice_scenario":
        strength = "Considered multiple perspectives"
        evidence = ["Engaged with ethical scenario"]
        skills.extend([SkillCategory.SOCIAL_EMOTIONAL, SkillCategory.CHARACTER_VALUES])
        suggestion = "Keep exploring how your values guide your decisions"
    else:
        strength = "Active engagement with learning"
        evidence = ["Completed the quest"]
        suggestion = "Continue exploring new challenges"

    return QuestInsight(
        strength_observed=strength,
        growth_suggestion=suggestion,
        evidence=evidence or ["Completed the quest"],
        skill_signals=_dedupe(skills),
    )


def coaching_insight(
    quest_type: str,
    summary: Optional[QuestScoreSummary],
    time_spent_seconds: float,
    hints_used: int,
    goal_title: str,
    skill_focus: Sequence[SkillCategory],
    *,
    goal_maps: Optional[GoalSkillMapTable] = None,
) -> CoachingInsight:
    """Goal-aligned feedback for a facilitator quest."""
    skill_map = resolve_goal(goal_title, table=goal_maps).skill_map
    accuracy = _accuracy(summary)
    focus_label = skill_focus[0].display_name if skill_focus else None

    if quest_type == "mini_game":
        if accuracy >= 80:
            strength = "Strong analytical thinking"
        elif accuracy >= 60:
            strength = "Solid problem-solving approach"
        else:
            strength = "Persistent effort in challenges"
        evidence = _mini_game_evidence(accuracy, time_spent_seconds, hints_used)
        top_skill = max(skill_map.skill_weights.items(), key=lambda item: item[1])[0]
        tip = f"To move closer to {goal_title}, continue practicing {top_skill.display_name} challenges."
    elif quest_type == "reflection":
        if _response_length(summary) > DETAILED_REFLECTION_LENGTH:
            strength, evidence = "Thoughtful self-reflection", ["Provided detailed reflection"]
        else:
            strength, evidence = "Willingness to reflect", ["Engaged with reflection prompt"]
        tip = f"Reflecting on your {focus_label or 'learning'} helps build self-awareness needed for {goal_title}."
    elif quest_type == "choice_scenario":
        strength = "Considered multiple perspectives"
        evidence = ["Engaged with ethical scenario"]
        tip = f"Exploring scenarios helps develop decision-making skills important for {goal_title}."
    else:
        strength = "Active engagement with learning"
        evidence = ["Completed the quest"]
        tip = f"Continue practicing to build skills for {goal_title}."

    return CoachingInsight(
        strength_observed=strength,
        improvement_tip=tip,
        evidence=evidence or ["Completed the quest"],
        skill_signals=_dedupe(list(skill_focus)),
        goal_alignment=f"This practice strengthens {focus_label or 'key skills'} important for {goal_title}.",
    )


__all__ = ["CoachingInsight", "QuestInsight", "coaching_insight", "quest_insight"]
