"""Student XP levels and per-activity XP awards."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

BASE_ACTIVITY_XP = 50
MIN_ACTIVITY_XP = 10
HINT_XP_PENALTY = 5


@dataclass(frozen=True)
class StudentLevel:
    level: int
    name: str
    xp_required: int
    next_level_xp: Optional[int]


LEVELS: tuple[StudentLevel, ...] = (
    StudentLevel(1, "Curious Rookie", 0, 100),
    StudentLevel(2, "Pattern Hunter", 100, 250),
    StudentLevel(3, "Logic Explorer", 250, 500),
    StudentLevel(4, "Strategy Crafter", 500, 1000),
    StudentLevel(5, "Mind Athlete", 1000, 2000),
    StudentLevel(6, "Insight Captain", 2000, 3500),
    StudentLevel(7, "Wisdom Seeker", 3500, 5500),
    StudentLevel(8, "Master Thinker", 5500, 8000),
    StudentLevel(9, "Genius Navigator", 8000, 12000),
    StudentLevel(10, "Legendary Scholar", 12000, 18000),
    StudentLevel(11, "Supreme Mind", 18000, 25000),
    StudentLevel(12, "Transcendent Master", 25000, None),
)


def activity_xp(
    accuracy: Optional[float] = None,
    time_spent_seconds: Optional[float] = None,
    questions_answered: Optional[int] = None,
    hints_used: int = 0,
) -> int:
    xp = BASE_ACTIVITY_XP
    if accuracy is not None:
        xp += math.floor(accuracy * 0.5)
    if time_spent_seconds and questions_answered:
        average = time_spent_seconds / questions_answered
        if average < 30:
            xp += 30
        elif average < 60:
            xp += 20
        elif average < 90:
            xp += 10
    if hints_used:
        xp -= hints_used * HINT_XP_PENALTY
    return max(MIN_ACTIVITY_XP, xp)


def current_level(total_xp: int) -> StudentLevel:
    for level in reversed(LEVELS):
        if total_xp >= level.xp_required:
            return level
    return LEVELS[0]


class XPProgress(BaseModel):
    level: int
    name: str
    xp_in_level: int
    xp_needed_for_next: Optional[int]
    progress_percent: float


def xp_progress(total_xp: int) -> XPProgress:
    level = current_level(total_xp)
    in_level = total_xp - level.xp_required
    if level.next_level_xp is None:
        return XPProgress(
            level=level.level,
            name=level.name,
            xp_in_level=in_level,
            xp_needed_for_next=None,
            progress_percent=100.0,
        )
    needed = level.next_level_xp - level.xp_required
    return XPProgress(
        level=level.level,
        name=level.name,
        xp_in_level=in_level,
        xp_needed_for_next=needed,
        progress_percent=min(100.0, in_level / needed * 100),
    )


def leveled_up(old_xp: int, new_xp: int) -> bool:
    return current_level(new_xp).level > current_level(old_xp).level


__all__ = [
    "LEVELS",
    "StudentLevel",
    "XPProgress",
    "activity_xp",
    "current_level",
    "leveled_up",
    "xp_progress",
]
