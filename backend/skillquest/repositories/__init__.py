"""Repositories wrapping SkillQuest persistence."""

from .career_unlocks import CareerUnlockRepository
from .class_focus import ClassFocusRepository
from .quest_sets import QuestSetStore, WeeklyPlanStore
from .skill_scores import QuestAttemptRepository, SkillScoreRepository

__all__ = [
    "CareerUnlockRepository",
    "ClassFocusRepository",
    "QuestAttemptRepository",
    "QuestSetStore",
    "SkillScoreRepository",
    "WeeklyPlanStore",
]
