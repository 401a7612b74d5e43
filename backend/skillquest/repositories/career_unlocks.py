"""Persisted career unlocks; a career unlocks at most once per student."""

from __future__ import annotations

import logging
from typing import List, Sequence, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..careers import UnlockCandidate
from ..db.models import CareerUnlockModel
from ..telemetry import emit_event

logger = logging.getLogger(__name__)


class CareerUnlockRepository:
    def unlocked_ids(self, session: Session, student_id: str) -> Set[str]:
        stmt = select(CareerUnlockModel.career_id).where(CareerUnlockModel.student_id == student_id)
        return set(session.execute(stmt).scalars())

    def record(
        self,
        session: Session,
        tenant_id: str,
        student_id: str,
        candidates: Sequence[UnlockCandidate],
    ) -> List[UnlockCandidate]:
        """Persist new unlocks and return the ones actually stored."""
        stored: List[UnlockCandidate] = []
        for candidate in candidates:
            try:
                with session.begin_nested():
                    session.add(
                        CareerUnlockModel(
                            tenant_id=tenant_id,
                            student_id=student_id,
                            career_id=candidate.career.id,
                            reason=candidate.reason,
                            evidence=list(candidate.evidence),
                            confidence=candidate.confidence,
                        )
                    )
                    session.flush()
            except IntegrityError:
                logger.debug("Career %s already unlocked for %s", candidate.career.id, student_id)
                continue
            stored.append(candidate)
            emit_event(
                "career_unlocked",
                tenant_id=tenant_id,
                student_id=student_id,
                career_id=candidate.career.id,
                confidence=candidate.confidence,
            )
        return stored


__all__ = ["CareerUnlockRepository"]
