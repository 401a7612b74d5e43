"""Exception hierarchy for the SkillQuest engine."""

from __future__ import annotations


class SkillQuestError(Exception):
    """Base class for engine errors surfaced to callers."""


class ConfigurationError(SkillQuestError):
    """A configuration table is malformed or incomplete."""


class UnknownGradeError(SkillQuestError, ValueError):
    """A grade outside the supported set was supplied to a strict parser."""

    def __init__(self, grade: object) -> None:
        super().__init__(f"Unsupported grade: {grade!r}")
        self.grade = grade


class QuestSetConflictError(SkillQuestError):
    """A uniqueness conflict could not be resolved by re-reading the winner."""


class QuestNotFoundError(SkillQuestError, LookupError):
    """No stored quest set or weekly plan holds the requested quest."""

    def __init__(self, student_id: str, quest_id: str) -> None:
        super().__init__(f"Quest {quest_id} not found for student {student_id}")
        self.student_id = student_id
        self.quest_id = quest_id


__all__ = [
    "ConfigurationError",
    "QuestNotFoundError",
    "QuestSetConflictError",
    "SkillQuestError",
    "UnknownGradeError",
]
