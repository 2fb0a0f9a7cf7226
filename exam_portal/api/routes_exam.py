from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, RedirectResponse

from .. import materials, storage
from ..auth.dependencies import require_examinee
from ..auth.protocol import authorize_material
from ..errors import NotFoundError
from ..schemas import ExamData, MaterialSummary
from ..session_store import SessionPrincipal

router = APIRouter(prefix="/exam", tags=["exam"])


@router.get("/data", response_model=ExamData)
def exam_data(examinee: SessionPrincipal = Depends(require_examinee)) -> ExamData:
    """Materials of the exam this session is bound to, in display order."""
    rows = materials.list_materials(examinee.exam_id)
    return ExamData(
        examName=examinee.exam_name or "",
        files=[
            MaterialSummary(id=r.id, displayName=r.display_name, fileType=r.file_type)
            for r in rows
        ],
    )


@router.get("/file/{material_id}")
def view_file(material_id: int, examinee: SessionPrincipal = Depends(require_examinee)):
    material = materials.get_material(material_id)
    if material is None:
        raise NotFoundError("File not found.")
    authorize_material(examinee, material)

    content = storage.resolve_content(material.content_ref)
    if content is None:
        raise NotFoundError("File not found.")
    if content.url:
        return RedirectResponse(content.url)
    return FileResponse(content.path, filename=material.filename, content_disposition_type="inline")
