"""Storage for teacher class focus profiles."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..class_focus import ClassFocusProfile, FocusWindow, resolve_active_profile
from ..db.models import ClassFocusProfileModel


class ClassFocusRepository:
    def save(self, session: Session, profile: ClassFocusProfile) -> ClassFocusProfile:
        """Insert or update; boosts are stored exactly as requested."""
        model = session.get(ClassFocusProfileModel, profile.id) if profile.id else None
        if model is None:
            model = ClassFocusProfileModel(tenant_id=profile.tenant_id, teacher_id=profile.teacher_id)
            if profile.id:
                model.id = profile.id
            session.add(model)
        model.grade = profile.grade
        model.priority_boosts = dict(profile.priority_boosts)
        model.is_active = profile.is_active
        model.window_start = profile.focus_window.start if profile.focus_window else None
        model.window_end = profile.focus_window.end if profile.focus_window else None
        model.last_modified = profile.updated_at
        session.flush()
        return self._to_domain(model)

    def list_for_teacher(self, session: Session, tenant_id: str, teacher_id: str) -> List[ClassFocusProfile]:
        stmt = select(ClassFocusProfileModel).where(
            ClassFocusProfileModel.tenant_id == tenant_id,
            ClassFocusProfileModel.teacher_id == teacher_id,
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def active_profile(
        self,
        session: Session,
        tenant_id: str,
        teacher_id: str,
        grade: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[ClassFocusProfile]:
        profiles = self.list_for_teacher(session, tenant_id, teacher_id)
        return resolve_active_profile(profiles, tenant_id, teacher_id, grade, now or datetime.now(timezone.utc))

    def _to_domain(self, model: ClassFocusProfileModel) -> ClassFocusProfile:
        window = None
        if model.window_start is not None or model.window_end is not None:
            window = FocusWindow(start=model.window_start, end=model.window_end)
        return ClassFocusProfile(
            id=model.id,
            tenant_id=model.tenant_id,
            teacher_id=model.teacher_id,
            grade=model.grade,
            priority_boosts=dict(model.priority_boosts or {}),
            is_active=model.is_active,
            focus_window=window,
            updated_at=model.last_modified,
        )


__all__ = ["ClassFocusRepository"]
