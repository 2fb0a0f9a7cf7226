from __future__ import annotations

from fastapi import APIRouter, Depends

from .. import credentials, exams, materials
from ..auth.dependencies import require_admin
from ..schemas import (
    CredentialCreate, CredentialGenerate, CredentialGenerateResponse, CredentialList,
    CredentialRead, CredentialUpdate, DashboardData, ExamCreate, ExamCreated,
    ExamRead, ExamStatsRead, ExamUpdate, GeneratedCredentialRead, MaterialCreate,
    MaterialRead, MaterialUpdate, SuccessResponse,
)
from ..session_store import SessionPrincipal

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard-data", response_model=DashboardData)
def dashboard_data(admin: SessionPrincipal = Depends(require_admin)) -> DashboardData:
    """Per-exam credential usage and the currently active exam."""
    active = exams.get_active()
    return DashboardData(
        stats=[ExamStatsRead.model_validate(s) for s in exams.dashboard_stats()],
        activeExam=ExamRead.model_validate(active) if active else None,
        adminUsername=admin.username,
    )


# ---------------------------------------------------------------------------
# Exams
# ---------------------------------------------------------------------------

@router.get("/exams/list", response_model=list[ExamRead])
def list_exams(_admin: SessionPrincipal = Depends(require_admin)) -> list[ExamRead]:
    return [ExamRead.model_validate(e) for e in exams.list_exams()]


@router.post("/exams", response_model=ExamCreated)
def create_exam(body: ExamCreate, _admin: SessionPrincipal = Depends(require_admin)) -> ExamCreated:
    exam = exams.create_exam(body.name, body.date)
    return ExamCreated(id=exam.id)


@router.put("/exams/{exam_id}", response_model=ExamRead)
def update_exam(
    exam_id: int,
    body: ExamUpdate,
    _admin: SessionPrincipal = Depends(require_admin),
) -> ExamRead:
    return ExamRead.model_validate(exams.update_exam(exam_id, body.name, body.date, body.is_active))


@router.post("/exams/{exam_id}/activate", response_model=SuccessResponse)
def activate_exam(exam_id: int, _admin: SessionPrincipal = Depends(require_admin)) -> SuccessResponse:
    """Make this the only exam examinees can log in to."""
    exams.set_active(exam_id)
    return SuccessResponse()


@router.post("/exams/{exam_id}/deactivate", response_model=SuccessResponse)
def deactivate_exam(exam_id: int, _admin: SessionPrincipal = Depends(require_admin)) -> SuccessResponse:
    exams.deactivate(exam_id)
    return SuccessResponse()


@router.delete("/exams/{exam_id}", response_model=SuccessResponse)
def delete_exam(exam_id: int, _admin: SessionPrincipal = Depends(require_admin)) -> SuccessResponse:
    exams.delete_exam(exam_id)
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

@router.get("/credentials/list/{exam_id}", response_model=CredentialList)
def list_credentials(exam_id: int, _admin: SessionPrincipal = Depends(require_admin)) -> CredentialList:
    listing = credentials.list_for_exam(exam_id)
    return CredentialList(
        credentials=[CredentialRead.model_validate(c) for c in listing.credentials],
        total=listing.total,
        used=listing.used,
    )


@router.post("/credentials/generate", response_model=CredentialGenerateResponse)
def generate_credentials(
    body: CredentialGenerate,
    _admin: SessionPrincipal = Depends(require_admin),
) -> CredentialGenerateResponse:
    """Plaintext passwords are returned once, here, for distribution."""
    generated = credentials.generate_batch(body.examId, body.count, body.prefix)
    return CredentialGenerateResponse(
        generated=[GeneratedCredentialRead.model_validate(g) for g in generated],
    )


@router.post("/credentials", response_model=CredentialRead)
def create_credential(
    body: CredentialCreate,
    _admin: SessionPrincipal = Depends(require_admin),
) -> CredentialRead:
    row = credentials.create_one(body.examId, body.username, body.password, body.examineeName)
    return CredentialRead.model_validate(row)


@router.post("/credentials/{credential_id}/reset", response_model=SuccessResponse)
def reset_credential(credential_id: int, _admin: SessionPrincipal = Depends(require_admin)) -> SuccessResponse:
    credentials.reset(credential_id)
    return SuccessResponse()


@router.put("/credentials/{credential_id}", response_model=SuccessResponse)
def update_credential(
    credential_id: int,
    body: CredentialUpdate,
    _admin: SessionPrincipal = Depends(require_admin),
) -> SuccessResponse:
    credentials.update_examinee_name(credential_id, body.examineeName)
    return SuccessResponse()


@router.delete("/credentials/exam/{exam_id}", response_model=SuccessResponse)
def delete_exam_credentials(exam_id: int, _admin: SessionPrincipal = Depends(require_admin)) -> SuccessResponse:
    removed = credentials.delete_by_exam(exam_id)
    return SuccessResponse(message=f"Deleted {removed} credentials.")


@router.delete("/credentials/{credential_id}", response_model=SuccessResponse)
def delete_credential(credential_id: int, _admin: SessionPrincipal = Depends(require_admin)) -> SuccessResponse:
    credentials.delete_one(credential_id)
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Exam materials
# ---------------------------------------------------------------------------

@router.get("/files/list/{exam_id}", response_model=list[MaterialRead])
def list_files(exam_id: int, _admin: SessionPrincipal = Depends(require_admin)) -> list[MaterialRead]:
    return [MaterialRead.model_validate(m) for m in materials.list_materials(exam_id)]


@router.post("/files", response_model=MaterialRead)
def register_file(body: MaterialCreate, _admin: SessionPrincipal = Depends(require_admin)) -> MaterialRead:
    """Attach content that is already stored (local upload path or URL)."""
    row = materials.add_material(
        body.examId, body.displayName, body.filename, body.contentRef, body.fileType,
    )
    return MaterialRead.model_validate(row)


@router.put("/files/{material_id}", response_model=MaterialRead)
def update_file(
    material_id: int,
    body: MaterialUpdate,
    _admin: SessionPrincipal = Depends(require_admin),
) -> MaterialRead:
    return MaterialRead.model_validate(
        materials.update_material(material_id, body.displayName, body.sortOrder)
    )


@router.delete("/files/{material_id}", response_model=SuccessResponse)
def delete_file(material_id: int, _admin: SessionPrincipal = Depends(require_admin)) -> SuccessResponse:
    materials.delete_material(material_id)
    return SuccessResponse()
