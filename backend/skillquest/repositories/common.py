"""Idempotent create-or-read helper shared by the repositories."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import QuestSetConflictError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def get_or_create(
    session: Session,
    read: Callable[[], Optional[ModelT]],
    build: Callable[[], ModelT],
    *,
    label: str,
) -> Tuple[ModelT, bool]:
    """Return ``(row, created)``.

    The insert runs inside a SAVEPOINT; when a concurrent writer wins the
    unique constraint, the savepoint is rolled back and the winner is read.
    """
    existing = read()
    if existing is not None:
        return existing, False

    model = build()
    try:
        with session.begin_nested():
            session.add(model)
            session.flush()
    except IntegrityError:
        logger.info("Concurrent create detected for %s; reading the stored row", label)
        winner = read()
        if winner is None:
            raise QuestSetConflictError(f"Unable to resolve concurrent create for {label}")
        return winner, False
    return model, True


__all__ = ["get_or_create"]
