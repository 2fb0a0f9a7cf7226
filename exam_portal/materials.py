from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func, select

from . import storage
from .database import db_session
from .errors import NotFoundError, ValidationError
from .models import Exam, ExamMaterial

logger = logging.getLogger("examportal.materials")

FILE_TYPES = ("pdf", "image")


def list_materials(exam_id: int) -> List[ExamMaterial]:
    with db_session() as session:
        return list(
            session.execute(
                select(ExamMaterial)
                .where(ExamMaterial.exam_id == exam_id)
                .order_by(ExamMaterial.sort_order, ExamMaterial.id)
            ).scalars().all()
        )


def get_material(material_id: int) -> Optional[ExamMaterial]:
    with db_session() as session:
        return session.get(ExamMaterial, material_id)


def add_material(
    exam_id: int,
    display_name: Optional[str],
    filename: Optional[str],
    content_ref: str,
    file_type: str,
) -> ExamMaterial:
    """Register already-stored content against an exam, appended last."""
    if not exam_id:
        raise ValidationError("Exam ID is required.")
    if file_type not in FILE_TYPES:
        raise ValidationError(f"file_type must be one of {', '.join(FILE_TYPES)}.")
    if not content_ref:
        raise ValidationError("content_ref is required.")
    filename = filename or content_ref.rstrip("/").rsplit("/", 1)[-1]

    with db_session() as session:
        if session.get(Exam, exam_id) is None:
            raise NotFoundError("Exam not found.")
        max_order = session.execute(
            select(func.max(ExamMaterial.sort_order)).where(ExamMaterial.exam_id == exam_id)
        ).scalar_one()
        row = ExamMaterial(
            exam_id=exam_id,
            display_name=display_name or filename,
            filename=filename,
            content_ref=content_ref,
            file_type=file_type,
            sort_order=(max_order or 0) + 1,
        )
        session.add(row)
        session.flush()
        session.refresh(row)
        logger.info("Registered %s material %d for exam %d", file_type, row.id, exam_id)
        return row


def delete_material(material_id: int) -> None:
    with db_session() as session:
        row = session.get(ExamMaterial, material_id)
        if row is None:
            raise NotFoundError("File not found.")
        ref = row.content_ref

    storage.delete_content(ref)

    with db_session() as session:
        row = session.get(ExamMaterial, material_id)
        if row is not None:
            session.delete(row)
    logger.info("Deleted material %d", material_id)


def update_material(material_id: int, display_name: Optional[str], sort_order: Optional[int]) -> ExamMaterial:
    """Rename and/or reposition a material. ``None`` leaves a field as is."""
    if display_name is not None and not display_name.strip():
        raise ValidationError("Display name cannot be empty.")

    with db_session() as session:
        row = session.get(ExamMaterial, material_id)
        if row is None:
            raise NotFoundError("File not found.")
        if display_name is not None:
            row.display_name = display_name.strip()
        if sort_order is not None:
            row.sort_order = sort_order
        session.flush()
        session.refresh(row)
        return row
