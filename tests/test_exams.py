"""
tests/test_exams.py — Exam activation and lifecycle
===================================================

Covers: the single-active-exam invariant, activation of unknown exams,
update/deactivate, dashboard statistics, and exam deletion with cascading
credentials and best-effort material cleanup.
"""
from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import func, select

from exam_portal import credentials, exams, materials, storage
from exam_portal.config import settings
from exam_portal.database import db_session
from exam_portal.errors import NotFoundError, ValidationError
from exam_portal.models import Credential, Exam, ExamMaterial


def _active_ids() -> list[int]:
    with db_session() as session:
        return list(session.execute(select(Exam.id).where(Exam.is_active.is_(True))).scalars())


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------

class TestActivation:
    def test_new_exams_start_inactive(self):
        exam = exams.create_exam("Inactive by default", date(2026, 5, 1))
        assert exam.is_active is False
        assert exam.date == date(2026, 5, 1)

    def test_set_active_is_exclusive(self):
        first = exams.create_exam("Activation A")
        second = exams.create_exam("Activation B")

        exams.set_active(first.id)
        assert exams.get_active().id == first.id
        assert _active_ids() == [first.id]

        exams.set_active(second.id)
        assert exams.get_active().id == second.id
        assert _active_ids() == [second.id]

    def test_set_active_twice_is_stable(self):
        exam = exams.create_exam("Activation repeat")
        exams.set_active(exam.id)
        exams.set_active(exam.id)
        assert _active_ids() == [exam.id]

    def test_unknown_exam_leaves_current_active(self):
        exam = exams.create_exam("Activation keeper")
        exams.set_active(exam.id)

        with pytest.raises(NotFoundError):
            exams.set_active(999_999)

        assert _active_ids() == [exam.id]

    def test_deactivate(self):
        exam = exams.create_exam("Activation off")
        exams.set_active(exam.id)
        exams.deactivate(exam.id)
        assert exams.get_active() is None
        assert exams.find_by_id(exam.id).is_active is False

    def test_update_with_active_flag_goes_through_activation(self):
        first = exams.create_exam("Update A")
        second = exams.create_exam("Update B")
        exams.set_active(first.id)

        updated = exams.update_exam(second.id, "Update B renamed", None, True)
        assert updated.name == "Update B renamed"
        assert updated.is_active is True
        assert _active_ids() == [second.id]

    def test_update_requires_name(self):
        exam = exams.create_exam("Update name")
        with pytest.raises(ValidationError):
            exams.update_exam(exam.id, " ", None, False)

    def test_create_requires_name(self):
        with pytest.raises(ValidationError):
            exams.create_exam("")


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def test_dashboard_stats_counts_used_credentials():
    exam = exams.create_exam("Stats exam")
    credentials.generate_batch(exam.id, 3)
    row = credentials.list_for_exam(exam.id).credentials[0]
    credentials.consume(row.id)

    stats = {s.id: s for s in exams.dashboard_stats()}
    assert stats[exam.id].total_credentials == 3
    assert stats[exam.id].used_credentials == 1

    empty = exams.create_exam("Stats empty")
    stats = {s.id: s for s in exams.dashboard_stats()}
    assert stats[empty.id].total_credentials == 0
    assert stats[empty.id].used_credentials == 0


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------

def _count(model, exam_id: int) -> int:
    with db_session() as session:
        return session.execute(
            select(func.count()).select_from(model).where(model.exam_id == exam_id)
        ).scalar_one()


class TestDeleteExam:
    def test_cascades_to_credentials_and_materials(self):
        exam = exams.create_exam("Delete cascade")
        credentials.generate_batch(exam.id, 3)
        materials.add_material(exam.id, "Remote stem", "stem.pdf", "https://cdn.example.com/stem.pdf", "pdf")

        exams.delete_exam(exam.id)

        assert exams.find_by_id(exam.id) is None
        assert _count(Credential, exam.id) == 0
        assert _count(ExamMaterial, exam.id) == 0

    def test_removes_local_material_content(self):
        upload_dir = Path(settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        content = upload_dir / "delete-me.png"
        content.write_bytes(b"\x89PNG")

        exam = exams.create_exam("Delete local")
        materials.add_material(exam.id, None, "delete-me.png", "delete-me.png", "image")

        exams.delete_exam(exam.id)
        assert not content.exists()

    def test_storage_failure_does_not_block_delete(self, monkeypatch):
        def _broken(ref):
            raise RuntimeError("storage unreachable")

        monkeypatch.setattr(storage, "delete_content", _broken)

        exam = exams.create_exam("Delete despite storage")
        credentials.generate_batch(exam.id, 2)
        materials.add_material(exam.id, "Image", "x.png", "x.png", "image")

        exams.delete_exam(exam.id)
        assert exams.find_by_id(exam.id) is None
        assert _count(Credential, exam.id) == 0

    def test_unknown_exam(self):
        with pytest.raises(NotFoundError):
            exams.delete_exam(999_999)


def test_materials_sorted_in_insert_order():
    exam = exams.create_exam("Material order")
    a = materials.add_material(exam.id, "A", "a.pdf", "a.pdf", "pdf")
    b = materials.add_material(exam.id, "B", "b.png", "b.png", "image")
    assert (a.sort_order, b.sort_order) == (1, 2)
    assert [m.id for m in materials.list_materials(exam.id)] == [a.id, b.id]


def test_material_rejects_unknown_type():
    exam = exams.create_exam("Material type")
    with pytest.raises(ValidationError):
        materials.add_material(exam.id, "Doc", "a.docx", "a.docx", "docx")


def test_delete_material_removes_row_and_content():
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    content = upload_dir / "single-delete.pdf"
    content.write_bytes(b"%PDF")

    exam = exams.create_exam("Material delete")
    row = materials.add_material(exam.id, "Single", "single-delete.pdf", "single-delete.pdf", "pdf")

    materials.delete_material(row.id)
    assert materials.get_material(row.id) is None
    assert not content.exists()
    with pytest.raises(NotFoundError):
        materials.delete_material(row.id)


def test_update_material_renames_and_reorders():
    exam = exams.create_exam("Material update")
    a = materials.add_material(exam.id, "A", "a.pdf", "a.pdf", "pdf")
    b = materials.add_material(exam.id, "B", "b.pdf", "b.pdf", "pdf")

    updated = materials.update_material(b.id, " B first ", 0)
    assert updated.display_name == "B first"
    assert [m.id for m in materials.list_materials(exam.id)] == [b.id, a.id]

    # None leaves a field untouched
    materials.update_material(a.id, None, 5)
    assert materials.get_material(a.id).display_name == "A"
    assert materials.get_material(a.id).sort_order == 5


def test_update_material_errors():
    exam = exams.create_exam("Material update errors")
    row = materials.add_material(exam.id, "A", "a.pdf", "a.pdf", "pdf")
    with pytest.raises(ValidationError):
        materials.update_material(row.id, "  ", None)
    with pytest.raises(NotFoundError):
        materials.update_material(999_999, "x", None)
