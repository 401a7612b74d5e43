"""Teacher class focus profiles and the capped priority boost they apply."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field

from .grades import SkillCategory

logger = logging.getLogger(__name__)

MAX_CLASS_FOCUS_BOOST = 0.20
DEBUG_TOP_N = 5


class PriorityBreakdown(BaseModel):
    base_priority: float
    requested_boost: float = 0.0
    class_focus_boost: float = 0.0
    final_priority: float
    skill: Optional[str] = None


def _skill_key(skill: Union[SkillCategory, str]) -> str:
    if isinstance(skill, SkillCategory):
        return skill.value
    return str(skill).strip().upper()


def normalize_boosts(boosts: Optional[Mapping[str, float]]) -> Dict[str, float]:
    """Upper-case skill keys; values are kept as given."""
    if not boosts:
        return {}
    normalized: Dict[str, float] = {}
    for key, value in boosts.items():
        skill_key = _skill_key(key)
        try:
            normalized[skill_key] = float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric class focus boost for %s: %r", skill_key, value)
    return normalized


def capped_boost(
    skill: Union[SkillCategory, str],
    boosts: Optional[Mapping[str, float]],
    *,
    cap: float = MAX_CLASS_FOCUS_BOOST,
) -> float:
    requested = normalize_boosts(boosts).get(_skill_key(skill), 0.0)
    return min(cap, max(0.0, requested))


def apply_boost(
    base_priority: float,
    skill: Union[SkillCategory, str],
    boosts: Optional[Mapping[str, float]],
    *,
    cap: float = MAX_CLASS_FOCUS_BOOST,
) -> float:
    """``base * (1 + boost)`` with the boost clamped into ``[0, cap]``."""
    return base_priority * (1 + capped_boost(skill, boosts, cap=cap))


def priority_breakdown(
    base_priority: float,
    skill: Union[SkillCategory, str],
    boosts: Optional[Mapping[str, float]],
    *,
    cap: float = MAX_CLASS_FOCUS_BOOST,
) -> PriorityBreakdown:
    key = _skill_key(skill)
    requested = normalize_boosts(boosts).get(key, 0.0)
    applied = min(cap, max(0.0, requested))
    return PriorityBreakdown(
        base_priority=base_priority,
        requested_boost=requested,
        class_focus_boost=applied,
        final_priority=base_priority * (1 + applied),
        skill=key,
    )


class FocusWindow(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class ClassFocusProfile(BaseModel):
    """A teacher's requested skill emphasis, optionally scoped to a grade and time window."""

    id: Optional[str] = None
    tenant_id: str
    teacher_id: str
    grade: Optional[int] = None
    priority_boosts: Dict[str, float] = Field(default_factory=dict)
    is_active: bool = True
    focus_window: Optional[FocusWindow] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: datetime) -> bool:
        if self.focus_window is None or self.focus_window.end is None:
            return False
        return _aware(self.focus_window.end) < _aware(now)

    def boosts(self) -> Dict[str, float]:
        return normalize_boosts(self.priority_boosts)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def resolve_active_profile(
    profiles: Iterable[ClassFocusProfile],
    tenant_id: str,
    teacher_id: str,
    grade: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Optional[ClassFocusProfile]:
    """Most recently updated active profile; an expired window makes it inert."""
    moment = now or datetime.now(timezone.utc)
    candidates = [
        profile
        for profile in profiles
        if profile.tenant_id == tenant_id
        and profile.teacher_id == teacher_id
        and profile.is_active
        and (grade is None or profile.grade == grade)
    ]
    if not candidates:
        return None
    latest = max(candidates, key=lambda profile: _aware(profile.updated_at))
    if latest.is_expired(moment):
        logger.debug("Class focus profile %s for teacher %s has expired", latest.id, teacher_id)
        return None
    return latest


def log_priority_debug(entries: Sequence[tuple[str, PriorityBreakdown]]) -> None:
    """Log the top class-focus breakdowns; callers gate this on ``debug_class_focus``."""
    top = list(entries)[:DEBUG_TOP_N]
    logger.info("Class focus prioritization: top %s candidates after boost", len(top))
    for position, (title, breakdown) in enumerate(top, start=1):
        logger.info(
            "%s. %s final=%.2f base=%.2f boost=+%.1f%% skill=%s",
            position,
            title,
            breakdown.final_priority,
            breakdown.base_priority,
            breakdown.class_focus_boost * 100,
            breakdown.skill,
        )


__all__ = [
    "ClassFocusProfile",
    "FocusWindow",
    "MAX_CLASS_FOCUS_BOOST",
    "PriorityBreakdown",
    "apply_boost",
    "capped_boost",
    "log_priority_debug",
    "normalize_boosts",
    "priority_breakdown",
    "resolve_active_profile",
]
