from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials

from .dependencies import bearer_scheme, require_admin
from .protocol import ClientInfo, authenticate_admin, authenticate_examinee, change_admin_password
from ..config import settings
from ..rate_limit import limiter
from ..schemas import ChangePasswordRequest, LoginRequest, LoginResponse, SuccessResponse
from ..session_store import SessionPrincipal, destroy_session, resolve_session

router = APIRouter(tags=["auth"])


def _client(request: Request) -> ClientInfo:
    return ClientInfo(
        key=request.client.host if request.client else "unknown",
        user_agent=request.headers.get("user-agent"),
    )


def _logout(bearer: HTTPAuthorizationCredentials | None) -> SuccessResponse:
    if bearer and bearer.credentials:
        principal = resolve_session(bearer.credentials)
        if principal is not None:
            destroy_session(principal.session_id)
    return SuccessResponse(message="Logged out.")


# ---------------------------------------------------------------------------
# Examinee
# ---------------------------------------------------------------------------

@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, body: LoginRequest) -> LoginResponse:
    issued = authenticate_examinee(body.username, body.password, _client(request))
    return LoginResponse(
        redirect="/exam",
        access_token=issued.token,
        username=issued.principal.username,
        exam_name=issued.principal.exam_name,
        expires_at=issued.expires_at,
    )


@router.post("/logout", response_model=SuccessResponse)
def logout(bearer: HTTPAuthorizationCredentials | None = Security(bearer_scheme)) -> SuccessResponse:
    return _logout(bearer)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@router.post("/admin/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def admin_login(request: Request, body: LoginRequest) -> LoginResponse:
    issued = authenticate_admin(body.username, body.password, _client(request))
    return LoginResponse(
        redirect="/admin",
        access_token=issued.token,
        username=issued.principal.username,
        expires_at=issued.expires_at,
    )


@router.post("/admin/logout", response_model=SuccessResponse)
def admin_logout(bearer: HTTPAuthorizationCredentials | None = Security(bearer_scheme)) -> SuccessResponse:
    return _logout(bearer)


@router.post("/admin/change-password", response_model=SuccessResponse)
def change_password(
    body: ChangePasswordRequest,
    admin: SessionPrincipal = Depends(require_admin),
) -> SuccessResponse:
    change_admin_password(
        admin.subject_id,
        body.currentPassword,
        body.newPassword,
        body.confirmPassword,
    )
    return SuccessResponse(message="Password changed successfully")
