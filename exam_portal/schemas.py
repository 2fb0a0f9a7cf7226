from __future__ import annotations

from datetime import date as date_type, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    # Optional so that missing fields reach the protocol's own check.
    username: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool = True
    redirect: str
    access_token: str
    token_type: str = "bearer"
    username: str
    exam_name: Optional[str] = None
    expires_at: datetime


class ChangePasswordRequest(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None
    confirmPassword: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


# ---------------------------------------------------------------------------
# Exams
# ---------------------------------------------------------------------------

class ExamCreate(BaseModel):
    name: Optional[str] = None
    date: Optional[date_type] = None


class ExamUpdate(BaseModel):
    name: Optional[str] = None
    date: Optional[date_type] = None
    is_active: bool = False


class ExamRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    date: Optional[date_type] = None
    is_active: bool
    created_at: datetime


class ExamCreated(BaseModel):
    success: bool = True
    id: int


class ExamStatsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_active: bool
    total_credentials: int
    used_credentials: int


class DashboardData(BaseModel):
    stats: List[ExamStatsRead]
    activeExam: Optional[ExamRead] = None
    adminUsername: str


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------

class CredentialGenerate(BaseModel):
    examId: Optional[int] = None
    count: Optional[int] = None
    prefix: Optional[str] = Field(default=None, max_length=32)


class GeneratedCredentialRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: str
    password: str


class CredentialGenerateResponse(BaseModel):
    success: bool = True
    generated: List[GeneratedCredentialRead]


class CredentialCreate(BaseModel):
    examId: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    examineeName: Optional[str] = None


class CredentialUpdate(BaseModel):
    examineeName: Optional[str] = None


class CredentialRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    exam_id: int
    username: str
    password: str
    examinee_name: Optional[str] = None
    is_used: bool
    used_at: Optional[datetime] = None
    created_at: datetime


class CredentialList(BaseModel):
    credentials: List[CredentialRead]
    total: int
    used: int


# ---------------------------------------------------------------------------
# Examinee materials
# ---------------------------------------------------------------------------

class MaterialSummary(BaseModel):
    id: int
    displayName: str
    fileType: str


class ExamData(BaseModel):
    examName: str
    files: List[MaterialSummary]


class MaterialCreate(BaseModel):
    examId: Optional[int] = None
    displayName: Optional[str] = None
    filename: Optional[str] = None
    contentRef: Optional[str] = None
    fileType: Optional[str] = None


class MaterialUpdate(BaseModel):
    displayName: Optional[str] = None
    sortOrder: Optional[int] = None


class MaterialRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    exam_id: int
    display_name: str
    filename: str
    content_ref: str
    file_type: str
    sort_order: int
    created_at: datetime
