"""Database utilities for SkillQuest."""

from .base import Base
from .session import (
    SessionManager,
    dispose_engine,
    get_engine,
    get_session_dependency,
    get_session_factory,
    session_scope,
)

__all__ = [
    "Base",
    "SessionManager",
    "dispose_engine",
    "get_engine",
    "get_session_dependency",
    "get_session_factory",
    "session_scope",
]
