"""Skill maturity bands.

Bands describe how independently a skill is currently expressed, not how
"good" a student is, and they are not tied to academic grade. A Grade 10
student may be PRACTICING a skill that a Grade 8 student uses INDEPENDENTLY.
Comparisons always go through ``BAND_ORDER``; band values are never compared
as strings or treated as a linear score.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Dict, Literal, Optional

from .grades import SkillLevel

ExpectationComparison = Literal["below_expected", "within_expected", "above_expected"]
TrendDirection = Literal["up", "stable", "down"]


class SkillMaturityBand(str, Enum):
    UNCLASSIFIED = "UNCLASSIFIED"
    DISCOVERING = "DISCOVERING"
    PRACTICING = "PRACTICING"
    CONSISTENT = "CONSISTENT"
    INDEPENDENT = "INDEPENDENT"
    ADAPTIVE = "ADAPTIVE"


BAND_ORDER: tuple[SkillMaturityBand, ...] = (
    SkillMaturityBand.UNCLASSIFIED,
    SkillMaturityBand.DISCOVERING,
    SkillMaturityBand.PRACTICING,
    SkillMaturityBand.CONSISTENT,
    SkillMaturityBand.INDEPENDENT,
    SkillMaturityBand.ADAPTIVE,
)

DEFAULT_BAND_TOLERANCE = 1

_BAND_DESCRIPTIONS: Dict[SkillMaturityBand, str] = {
    SkillMaturityBand.UNCLASSIFIED: "Not yet observed or assessed",
    SkillMaturityBand.DISCOVERING: "First encounters, experimenting, learning what the skill feels like",
    SkillMaturityBand.PRACTICING: "Using the skill with effort and some support",
    SkillMaturityBand.CONSISTENT: "Showing the skill reliably in familiar situations",
    SkillMaturityBand.INDEPENDENT: "Applying the skill confidently without guidance",
    SkillMaturityBand.ADAPTIVE: "Flexibly using the skill across new or complex situations",
}

_BAND_LABELS: Dict[SkillMaturityBand, str] = {
    SkillMaturityBand.UNCLASSIFIED: "Getting Started",
    SkillMaturityBand.DISCOVERING: "Discovering",
    SkillMaturityBand.PRACTICING: "Practicing",
    SkillMaturityBand.CONSISTENT: "Consistent",
    SkillMaturityBand.INDEPENDENT: "Independent",
    SkillMaturityBand.ADAPTIVE: "Adaptive",
}

# First level of the two-level range each band owns on the 1..10 scale.
_BAND_LEVEL_FLOOR: Dict[SkillMaturityBand, int] = {
    SkillMaturityBand.DISCOVERING: 1,
    SkillMaturityBand.PRACTICING: 3,
    SkillMaturityBand.CONSISTENT: 5,
    SkillMaturityBand.INDEPENDENT: 7,
    SkillMaturityBand.ADAPTIVE: 9,
}

_BAND_BASE_XP: Dict[SkillMaturityBand, int] = {
    SkillMaturityBand.UNCLASSIFIED: 0,
    SkillMaturityBand.DISCOVERING: 100,
    SkillMaturityBand.PRACTICING: 300,
    SkillMaturityBand.CONSISTENT: 600,
    SkillMaturityBand.INDEPENDENT: 1000,
    SkillMaturityBand.ADAPTIVE: 1500,
}

_LEVEL_TITLES: Dict[int, str] = {
    1: "Seedling",
    2: "Sprout",
    3: "Budding",
    4: "Growing",
    5: "Flourishing",
    6: "Thriving",
    7: "Mastering",
    8: "Expert",
    9: "Legendary",
    10: "Transcendent",
}

_LEVEL_TO_BAND: Dict[SkillLevel, SkillMaturityBand] = {
    SkillLevel.EMERGING: SkillMaturityBand.DISCOVERING,
    SkillLevel.DEVELOPING: SkillMaturityBand.PRACTICING,
    SkillLevel.PROFICIENT: SkillMaturityBand.CONSISTENT,
    SkillLevel.ADVANCED: SkillMaturityBand.INDEPENDENT,
}


def band_order(band: SkillMaturityBand) -> int:
    return BAND_ORDER.index(band)


def is_band_higher(band: SkillMaturityBand, other: SkillMaturityBand) -> bool:
    return band_order(band) > band_order(other)


def band_description(band: SkillMaturityBand) -> str:
    return _BAND_DESCRIPTIONS[band]


def band_label(band: SkillMaturityBand) -> str:
    return _BAND_LABELS[band]


def band_for_level(level: Optional[SkillLevel]) -> SkillMaturityBand:
    """Map a stored score level to a band; no score yet means UNCLASSIFIED."""
    if level is None:
        return SkillMaturityBand.UNCLASSIFIED
    return _LEVEL_TO_BAND.get(level, SkillMaturityBand.UNCLASSIFIED)


def compare_to_expectation(
    current: SkillMaturityBand,
    expected: SkillMaturityBand,
    *,
    tolerance: int = DEFAULT_BAND_TOLERANCE,
) -> ExpectationComparison:
    """Descriptive comparison of a band against the grade expectation.

    UNCLASSIFIED is the baseline phase and is always within expectation.
    Differences up to ``tolerance`` band-steps are treated as natural variation.
    """
    if current == SkillMaturityBand.UNCLASSIFIED:
        return "within_expected"

    difference = band_order(current) - band_order(expected)
    if difference < -tolerance:
        return "below_expected"
    if difference > tolerance:
        return "above_expected"
    return "within_expected"


def _normalized_score(score: Optional[float]) -> float:
    if score is None:
        return 0.5
    return min(100.0, max(0.0, float(score))) / 100.0


def map_to_level(band: SkillMaturityBand, score: Optional[float] = None) -> int:
    """Student-facing level (1..10); each band owns a two-level sub-range."""
    floor = _BAND_LEVEL_FLOOR.get(band)
    if floor is None:
        return 1
    offset = min(1, math.floor(_normalized_score(score) * 2))
    return floor + offset


def map_to_xp(band: SkillMaturityBand, score: float) -> int:
    clamped = min(100.0, max(0.0, float(score)))
    return _BAND_BASE_XP[band] + math.floor(clamped * 0.5)


def level_title(level: int) -> str:
    if level <= 1:
        return _LEVEL_TITLES[1]
    if level >= 10:
        return _LEVEL_TITLES[10]
    return _LEVEL_TITLES.get(int(level), "Growing")


def visual_cues(band: SkillMaturityBand) -> Dict[str, Optional[str]]:
    cues: Dict[SkillMaturityBand, Dict[str, Optional[str]]] = {
        SkillMaturityBand.UNCLASSIFIED: {"glow": "soft", "progress_style": "dotted", "animation": None},
        SkillMaturityBand.DISCOVERING: {"glow": "soft", "progress_style": "dotted", "animation": "pulse"},
        SkillMaturityBand.PRACTICING: {"glow": "solid", "progress_style": "solid", "animation": "steady"},
        SkillMaturityBand.CONSISTENT: {"glow": "steady", "progress_style": "animated", "animation": "glow"},
        SkillMaturityBand.INDEPENDENT: {"glow": "highlight", "progress_style": "badge", "animation": "sparkle"},
        SkillMaturityBand.ADAPTIVE: {"glow": "aura", "progress_style": "star", "animation": "sparkle"},
    }
    return dict(cues[band])


def student_copy(band: SkillMaturityBand, trend: TrendDirection) -> str:
    """Encouraging copy for students; never names the band."""
    if trend == "up":
        messages = {
            SkillMaturityBand.DISCOVERING: "You're getting faster at this!",
            SkillMaturityBand.PRACTICING: "Level Up!",
            SkillMaturityBand.CONSISTENT: "Nice consistency streak!",
            SkillMaturityBand.INDEPENDENT: "New ability unlocked!",
            SkillMaturityBand.ADAPTIVE: "Mastery achieved!",
        }
        return messages.get(band, "Keep growing!")
    if trend == "stable":
        return "Steady progress!"
    return "Keep practicing!"


__all__ = [
    "BAND_ORDER",
    "DEFAULT_BAND_TOLERANCE",
    "ExpectationComparison",
    "SkillMaturityBand",
    "TrendDirection",
    "band_description",
    "band_for_level",
    "band_label",
    "band_order",
    "compare_to_expectation",
    "is_band_higher",
    "level_title",
    "map_to_level",
    "map_to_xp",
    "student_copy",
    "visual_cues",
]
