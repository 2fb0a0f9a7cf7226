from __future__ import annotations

from fastapi import Depends, HTTPException, Query, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..session_store import SessionPrincipal, resolve_session, EXAMINEE, ADMIN

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Resolve current session from the bearer token
# ---------------------------------------------------------------------------

def get_current_session(
    bearer: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    token: str | None = Query(None, description="Session token via query param (for direct file links)"),
) -> SessionPrincipal:
    """
    Accepts either:
      - Authorization: Bearer <token>
      - ?token=<token>  (for <img>/<iframe> sources that can't set headers)
    Returns the live session or raises 401.
    """
    raw = (bearer.credentials if bearer and bearer.credentials else None) or token
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not logged in.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    principal = resolve_session(raw)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Session expired or logged out.")
    return principal


# ---------------------------------------------------------------------------
# Role guards
# ---------------------------------------------------------------------------

def require_admin(principal: SessionPrincipal = Depends(get_current_session)) -> SessionPrincipal:
    if principal.kind != ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail="Admin access required.")
    return principal


def require_examinee(principal: SessionPrincipal = Depends(get_current_session)) -> SessionPrincipal:
    if principal.kind != EXAMINEE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail="Examinee access required.")
    return principal
