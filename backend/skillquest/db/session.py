"""Engine and session helpers for quest sets, plans and skill score storage."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional, Protocol

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings, get_settings
from .monitoring import instrument_engine

logger = logging.getLogger(__name__)


class SessionManager(Protocol):
    """Anything that hands out SQLAlchemy sessions (repositories accept these)."""

    def __call__(self) -> Session:  # pragma: no cover - protocol definition
        ...


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def engine_options(settings: Settings) -> Dict[str, Any]:
    """Keyword arguments for ``create_engine`` derived from settings."""
    if not settings.database_url:
        raise RuntimeError("SKILLQUEST_DATABASE_URL must be configured before using the database.")

    options: Dict[str, Any] = {
        "echo": settings.database_echo,
        "pool_pre_ping": True,
    }
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite":
        # Writers wait up to the busy timeout for the file lock.
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.database_busy_timeout_seconds,
        }
    else:
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
        options["pool_recycle"] = settings.database_pool_recycle_seconds
    return options


def get_engine() -> Engine:
    global _engine, _session_factory
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(settings.database_url, **engine_options(settings))
        instrument_engine(_engine, interval_seconds=settings.db_telemetry_interval_seconds)
        _session_factory = sessionmaker(
            bind=_engine,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Database engine ready (%s)", _engine.url.get_backend_name())
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None
    return _session_factory


@contextmanager
def session_scope(*, commit: bool = True) -> Generator[Session, None, None]:
    """Yield a session that commits on success and rolls back on any error."""
    session = get_session_factory()()
    try:
        yield session
        if commit:
            session.commit()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Rolling back session after %s", type(exc).__name__)
        session.rollback()
        raise
    finally:
        session.close()


def get_session_dependency() -> Generator[Session, None, None]:
    with session_scope() as session:
        yield session


def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "SessionManager",
    "dispose_engine",
    "engine_options",
    "get_engine",
    "get_session_dependency",
    "get_session_factory",
    "session_scope",
]
