"""
exams.py — Exams and the active-exam invariant
==============================================
At most one exam is active at a time. Activation clears the flag on
every exam and sets it on the target inside a single transaction, so no
reader ever sees the torn state in between.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy import case, func, select, update

from . import storage
from .database import db_session
from .errors import NotFoundError, ValidationError
from .models import Credential, Exam, ExamMaterial

logger = logging.getLogger("examportal.exams")


@dataclass
class ExamStats:
    id: int
    name: str
    is_active: bool
    total_credentials: int
    used_credentials: int


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def find_by_id(exam_id: int) -> Optional[Exam]:
    with db_session() as session:
        return session.get(Exam, exam_id)


def get_active() -> Optional[Exam]:
    with db_session() as session:
        return session.execute(
            select(Exam).where(Exam.is_active.is_(True)).limit(1)
        ).scalar_one_or_none()


def list_exams() -> List[Exam]:
    with db_session() as session:
        return list(
            session.execute(select(Exam).order_by(Exam.created_at.desc(), Exam.id.desc()))
            .scalars()
            .all()
        )


def dashboard_stats() -> List[ExamStats]:
    """Per-exam credential totals, newest exam first."""
    used = func.sum(case((Credential.is_used.is_(True), 1), else_=0))
    with db_session() as session:
        rows = session.execute(
            select(Exam.id, Exam.name, Exam.is_active, func.count(Credential.id), used)
            .outerjoin(Credential, Credential.exam_id == Exam.id)
            .group_by(Exam.id)
            .order_by(Exam.created_at.desc(), Exam.id.desc())
        ).all()
    return [
        ExamStats(
            id=r[0],
            name=r[1],
            is_active=bool(r[2]),
            total_credentials=r[3] or 0,
            used_credentials=r[4] or 0,
        )
        for r in rows
    ]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def create_exam(name: Optional[str], exam_date: Optional[date] = None) -> Exam:
    """New exams start inactive."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Exam name is required.")
    with db_session() as session:
        exam = Exam(name=name, date=exam_date, is_active=False)
        session.add(exam)
        session.flush()
        session.refresh(exam)
    logger.info("Created exam %s (%s)", exam.id, exam.name)
    return exam


def _activate(session, exam_id: int) -> None:
    # Clear first, then set; the caller's transaction makes both one unit.
    session.execute(
        update(Exam).where(Exam.is_active.is_(True)).values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(
        update(Exam).where(Exam.id == exam_id).values(is_active=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Exam not found.")


def set_active(exam_id: int) -> None:
    """Make ``exam_id`` the only active exam. Unknown ids change nothing."""
    with db_session() as session:
        _activate(session, exam_id)
    logger.info("Exam %s activated", exam_id)


def deactivate(exam_id: int) -> None:
    with db_session() as session:
        result = session.execute(
            update(Exam).where(Exam.id == exam_id).values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Exam not found.")
    logger.info("Exam %s deactivated", exam_id)


def update_exam(
    exam_id: int,
    name: Optional[str],
    exam_date: Optional[date],
    is_active: bool,
) -> Exam:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Exam name is required.")
    with db_session() as session:
        if is_active:
            _activate(session, exam_id)
        exam = session.get(Exam, exam_id)
        if exam is None:
            raise NotFoundError("Exam not found.")
        exam.name = name
        exam.date = exam_date
        if not is_active:
            exam.is_active = False
        session.flush()
        session.refresh(exam)
        return exam


def delete_exam(exam_id: int) -> None:
    """
    Delete an exam. Credentials and materials go with it through the
    foreign-key cascade. Material content is removed first, best-effort:
    a storage failure is logged and the row deletion still happens.
    """
    with db_session() as session:
        exam = session.get(Exam, exam_id)
        if exam is None:
            raise NotFoundError("Exam not found.")
        refs = session.execute(
            select(ExamMaterial.content_ref).where(ExamMaterial.exam_id == exam_id)
        ).scalars().all()

    for ref in refs:
        try:
            storage.delete_content(ref)
        except Exception:
            logger.exception("Material cleanup failed for %s; continuing with delete", ref)

    with db_session() as session:
        exam = session.get(Exam, exam_id)
        if exam is not None:
            session.delete(exam)
    logger.info("Deleted exam %s (%d materials)", exam_id, len(refs))
