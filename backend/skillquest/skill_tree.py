"""Role-specific skill tree views built on maturity bands."""

from __future__ import annotations

import logging
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .expectations import ExpectationTable, comparison_description, expected_band
from .grades import Grade, SkillCategory
from .maturity import (
    DEFAULT_BAND_TOLERANCE,
    SkillMaturityBand,
    TrendDirection,
    compare_to_expectation,
    level_title,
    map_to_level,
    map_to_xp,
    student_copy,
    visual_cues,
)

logger = logging.getLogger(__name__)

Role = Literal["student", "parent", "teacher"]

_B = SkillMaturityBand

TEACHER_ACTIONS: Dict[SkillCategory, Dict[SkillMaturityBand, List[str]]] = {
    SkillCategory.COGNITIVE_REASONING: {
        _B.DISCOVERING: [
            "Use 2-minute planning prompt before task",
            "Break complex problems into smaller steps",
            'Encourage "think aloud" strategies',
        ],
        _B.PRACTICING: [
            "Provide guided practice with examples",
            "Use scaffolded problem-solving prompts",
            "Celebrate logical thinking attempts",
        ],
        _B.CONSISTENT: [
            "Introduce more complex problem types",
            "Encourage independent reasoning",
            "Connect reasoning to real-world applications",
        ],
        _B.INDEPENDENT: [
            "Provide challenging, open-ended problems",
            "Encourage peer teaching opportunities",
            "Support creative problem-solving approaches",
        ],
        _B.ADAPTIVE: [
            "Offer advanced problem-solving challenges",
            "Encourage leadership in group problem-solving",
            "Support exploration of novel approaches",
        ],
        _B.UNCLASSIFIED: [
            "Observe and gather baseline evidence",
            "Provide varied problem-solving opportunities",
        ],
    },
    SkillCategory.PLANNING: {
        _B.DISCOVERING: [
            "Use 2-minute planning prompt before task",
            "Model planning with think-aloud",
            "Provide planning templates or checklists",
        ],
        _B.PRACTICING: [
            "Encourage daily planning routines",
            "Use visual planning tools",
            "Celebrate planning attempts",
        ],
        _B.CONSISTENT: [
            "Support independent planning strategies",
            "Introduce longer-term planning projects",
            "Connect planning to goal achievement",
        ],
        _B.INDEPENDENT: [
            "Provide complex planning challenges",
            "Encourage planning for multiple goals",
            "Support strategic planning approaches",
        ],
        _B.ADAPTIVE: [
            "Offer advanced planning opportunities",
            "Encourage planning for others",
            "Support innovative planning approaches",
        ],
        _B.UNCLASSIFIED: ["Observe planning behaviors", "Provide planning opportunities"],
    },
    SkillCategory.CREATIVITY: {
        _B.DISCOVERING: ["Encourage creative exploration", "Provide open-ended prompts"],
        _B.PRACTICING: ["Support creative practice", "Celebrate creative attempts"],
        _B.CONSISTENT: ["Introduce creative challenges", "Support creative expression"],
        _B.INDEPENDENT: ["Provide advanced creative projects", "Encourage creative leadership"],
        _B.ADAPTIVE: ["Offer innovative challenges", "Support creative innovation"],
        _B.UNCLASSIFIED: ["Observe creative behaviors", "Provide creative opportunities"],
    },
    SkillCategory.ATTENTION: {
        _B.DISCOVERING: ["Use attention-building activities", "Provide focus breaks"],
        _B.PRACTICING: ["Support focus practice", "Use attention strategies"],
        _B.CONSISTENT: ["Encourage sustained focus", "Support attention management"],
        _B.INDEPENDENT: ["Provide focus challenges", "Support independent focus"],
        _B.ADAPTIVE: ["Offer advanced focus opportunities", "Support flexible attention"],
        _B.UNCLASSIFIED: ["Observe attention patterns", "Provide focus opportunities"],
    },
    SkillCategory.MEMORY: {
        _B.DISCOVERING: ["Teach memory strategies", "Use mnemonic devices"],
        _B.PRACTICING: ["Support memory practice", "Celebrate memory successes"],
        _B.CONSISTENT: ["Encourage memory application", "Support memory strategies"],
        _B.INDEPENDENT: ["Provide memory challenges", "Support advanced memory"],
        _B.ADAPTIVE: ["Offer complex memory tasks", "Support memory innovation"],
        _B.UNCLASSIFIED: ["Observe memory patterns", "Provide memory opportunities"],
    },
    SkillCategory.SOCIAL_EMOTIONAL: {
        _B.DISCOVERING: ["Teach emotional awareness", "Model social skills"],
        _B.PRACTICING: ["Support social practice", "Celebrate emotional growth"],
        _B.CONSISTENT: ["Encourage social leadership", "Support emotional regulation"],
        _B.INDEPENDENT: ["Provide social challenges", "Support peer support"],
        _B.ADAPTIVE: ["Offer advanced social opportunities", "Support social innovation"],
        _B.UNCLASSIFIED: ["Observe social patterns", "Provide social opportunities"],
    },
    SkillCategory.METACOGNITION: {
        _B.DISCOVERING: ["Encourage self-reflection", "Model thinking about thinking"],
        _B.PRACTICING: ["Support metacognitive practice", "Celebrate self-awareness"],
        _B.CONSISTENT: ["Encourage metacognitive application", "Support learning strategies"],
        _B.INDEPENDENT: ["Provide metacognitive challenges", "Support advanced reflection"],
        _B.ADAPTIVE: ["Offer complex metacognitive tasks", "Support metacognitive innovation"],
        _B.UNCLASSIFIED: ["Observe metacognitive patterns", "Provide reflection opportunities"],
    },
    SkillCategory.LANGUAGE: {
        _B.DISCOVERING: ["Encourage language exploration", "Provide language-rich activities"],
        _B.PRACTICING: ["Support language practice", "Celebrate communication"],
        _B.CONSISTENT: ["Encourage language application", "Support communication skills"],
        _B.INDEPENDENT: ["Provide language challenges", "Support advanced communication"],
        _B.ADAPTIVE: ["Offer complex language tasks", "Support language innovation"],
        _B.UNCLASSIFIED: ["Observe language patterns", "Provide language opportunities"],
    },
    SkillCategory.CHARACTER_VALUES: {
        _B.DISCOVERING: ["Encourage value exploration", "Model character traits"],
        _B.PRACTICING: ["Support value practice", "Celebrate character growth"],
        _B.CONSISTENT: ["Encourage value application", "Support character development"],
        _B.INDEPENDENT: ["Provide character challenges", "Support value leadership"],
        _B.ADAPTIVE: ["Offer advanced character opportunities", "Support character innovation"],
        _B.UNCLASSIFIED: ["Observe character patterns", "Provide character opportunities"],
    },
}

FALLBACK_TEACHER_ACTIONS = ["Observe and provide opportunities"]

_INDICATORS = {
    "below_expected": ["✓", "➝"],
    "above_expected": ["✓", "✨"],
    "within_expected": ["✓"],
}


class ParentContext(BaseModel):
    message: str
    indicators: List[str] = Field(default_factory=list)


class TeacherInsights(BaseModel):
    maturity_band: SkillMaturityBand
    suggested_actions: List[str]


class SkillTreeView(BaseModel):
    skill: SkillCategory
    level: int
    level_title: str
    xp: int
    xp_progress: float
    student_copy: str
    visual_cues: Dict[str, Optional[str]]
    parent_context: Optional[ParentContext] = None
    teacher_insights: Optional[TeacherInsights] = None


def teacher_actions(skill: SkillCategory, band: SkillMaturityBand) -> List[str]:
    return list(TEACHER_ACTIONS.get(skill, {}).get(band, FALLBACK_TEACHER_ACTIONS))


def parent_context(
    current_band: SkillMaturityBand,
    expected: Optional[SkillMaturityBand],
    grade: Union[Grade, int],
    *,
    tolerance: int = DEFAULT_BAND_TOLERANCE,
) -> ParentContext:
    """Expectation wording for parents; soft language, no deficit framing."""
    if expected is None:
        return ParentContext(message=f"Currently showing {current_band.value.lower()} use.", indicators=["✓"])
    comparison = compare_to_expectation(current_band, expected, tolerance=tolerance)
    return ParentContext(
        message=comparison_description(comparison, current_band, expected, grade),
        indicators=list(_INDICATORS[comparison]),
    )


def skill_tree_view(
    role: Role,
    band: SkillMaturityBand,
    score: float,
    trend: TrendDirection,
    skill: SkillCategory,
    grade: Optional[Union[Grade, int]] = None,
    expected: Optional[SkillMaturityBand] = None,
    *,
    tolerance: int = DEFAULT_BAND_TOLERANCE,
    table: Optional[ExpectationTable] = None,
) -> SkillTreeView:
    """Students see levels and XP only; parents and teachers see more."""
    level = map_to_level(band, score)
    xp = map_to_xp(band, score)
    view = SkillTreeView(
        skill=skill,
        level=level,
        level_title=level_title(level),
        xp=xp,
        xp_progress=min(100.0, (xp % 1000) / 10),
        student_copy=student_copy(band, trend),
        visual_cues=visual_cues(band),
    )

    if role == "parent" and grade is not None:
        target = expected if expected is not None else expected_band(grade, skill, table=table)
        view.parent_context = parent_context(band, target, grade, tolerance=tolerance)
    elif role == "teacher":
        view.teacher_insights = TeacherInsights(maturity_band=band, suggested_actions=teacher_actions(skill, band))
    return view


__all__ = [
    "ParentContext",
    "Role",
    "SkillTreeView",
    "TEACHER_ACTIONS",
    "TeacherInsights",
    "parent_context",
    "skill_tree_view",
    "teacher_actions",
]
