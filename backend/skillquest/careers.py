"""Career catalog and rule-based career unlock evaluation."""

from __future__ import annotations

import json
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .content import QuestScoreSummary
from .errors import ConfigurationError
from .grades import SkillCategory

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_CAREERS_PATH = DATA_DIR / "careers.json"

BASE_CONFIDENCE = 50
MIN_UNLOCK_CONFIDENCE = 40
MAX_CONFIDENCE = 100
MAX_UNLOCKS_PER_ACTIVITY = 2


class RarityTier(str, Enum):
    COMMON = "COMMON"
    EMERGING = "EMERGING"
    ADVANCED = "ADVANCED"
    FRONTIER = "FRONTIER"


RARITY_ADJUSTMENT: Dict[RarityTier, int] = {
    RarityTier.COMMON: 0,
    RarityTier.EMERGING: -10,
    RarityTier.ADVANCED: -20,
    RarityTier.FRONTIER: -30,
}


class Career(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    short_pitch: str
    skill_signals: List[SkillCategory]
    rarity_tier: RarityTier = RarityTier.COMMON
    icon: str = ""


class CareerCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str
    careers: List[Career]

    def get(self, career_id: str) -> Optional[Career]:
        for career in self.careers:
            if career.id == career_id:
                return career
        return None

    def matching(self, skill_signals: Iterable[SkillCategory]) -> List[Career]:
        wanted = set(skill_signals)
        return [career for career in self.careers if wanted.intersection(career.skill_signals)]


def load_career_catalog(path: Optional[Union[str, Path]] = None) -> CareerCatalog:
    source = Path(path) if path else DEFAULT_CAREERS_PATH
    try:
        with source.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        catalog = CareerCatalog.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        logger.error("Unable to load career catalog %s: %s", source, exc)
        raise ConfigurationError(f"Unable to load career catalog {source}: {exc}") from exc

    ids = [career.id for career in catalog.careers]
    duplicates = sorted({career_id for career_id in ids if ids.count(career_id) > 1})
    if duplicates:
        message = f"Career catalog {source} repeats ids: {', '.join(duplicates)}"
        logger.error(message)
        raise ConfigurationError(message)
    return catalog


@lru_cache
def default_career_catalog() -> CareerCatalog:
    return load_career_catalog()


class ActivityPerformance(BaseModel):
    """Performance facts about one completed activity; accuracy is a percentage."""

    accuracy: Optional[float] = None
    time_spent_seconds: Optional[float] = None
    response_quality: Optional[float] = None

    @classmethod
    def from_summary(
        cls,
        summary: QuestScoreSummary,
        time_spent_seconds: Optional[float] = None,
    ) -> "ActivityPerformance":
        quality = summary.response_length if summary.response_length is not None else summary.response_quality
        return cls(
            accuracy=summary.accuracy,
            time_spent_seconds=time_spent_seconds,
            response_quality=quality,
        )


class UnlockCandidate(BaseModel):
    career: Career
    reason: str
    evidence: List[str] = Field(default_factory=list)
    confidence: int = Field(..., ge=0, le=MAX_CONFIDENCE)


def unlock_confidence(career: Career, performance: ActivityPerformance) -> int:
    confidence = BASE_CONFIDENCE
    if performance.accuracy is not None:
        if performance.accuracy >= 80:
            confidence += 20
        elif performance.accuracy >= 60:
            confidence += 10
    if performance.response_quality is not None and performance.response_quality > 100:
        confidence += 15
    confidence += RARITY_ADJUSTMENT.get(career.rarity_tier, 0)
    return confidence


def _format_accuracy(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def evaluate_career_unlocks(
    skill_signals: Sequence[SkillCategory],
    performance: ActivityPerformance,
    already_unlocked: Iterable[str],
    *,
    catalog: Optional[CareerCatalog] = None,
) -> List[UnlockCandidate]:
    """Careers an activity newly qualifies for, strongest first.

    Careers already unlocked are never proposed again and each career
    appears at most once.
    """
    source = catalog if catalog is not None else default_career_catalog()
    excluded = set(already_unlocked)
    seen: set[str] = set()
    names = [skill.display_name.lower() for skill in skill_signals]

    candidates: List[UnlockCandidate] = []
    for career in source.matching(skill_signals):
        if career.id in excluded or career.id in seen:
            continue
        seen.add(career.id)
        confidence = unlock_confidence(career, performance)
        if confidence < MIN_UNLOCK_CONFIDENCE:
            continue

        evidence: List[str] = []
        if performance.accuracy is not None:
            evidence.append(f"Strong performance ({_format_accuracy(performance.accuracy)}% accuracy)")
        if names:
            evidence.append(f"Demonstrated {', '.join(names)} skills")

        candidates.append(
            UnlockCandidate(
                career=career,
                reason=f"Your performance in {' and '.join(names)} suggests this career might interest you",
                evidence=evidence,
                confidence=min(MAX_CONFIDENCE, confidence),
            )
        )

    candidates.sort(key=lambda item: item.confidence, reverse=True)
    return candidates[:MAX_UNLOCKS_PER_ACTIVITY]


__all__ = [
    "ActivityPerformance",
    "Career",
    "CareerCatalog",
    "RarityTier",
    "UnlockCandidate",
    "default_career_catalog",
    "evaluate_career_unlocks",
    "load_career_catalog",
    "unlock_confidence",
]
