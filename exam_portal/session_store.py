"""
session_store.py — Server-side sessions behind signed tokens
============================================================
A login issues a JWT whose ``sid`` claim names a row in portal_sessions.
Both halves must be valid: the token signature and expiry, and the row
(deleted on logout). Expiry is absolute, fixed at issue time; nothing
runs in the background, expired rows are simply ignored and purged on
demand.

Examinee sessions are bound to the exam of the consumed credential and
that binding is what authorises material access afterwards.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from jose import JWTError
from sqlalchemy import delete

from .auth.core import create_session_token, decode_token, session_expiry
from .database import db_session
from .models import PortalSession

logger = logging.getLogger("examportal.sessions")

EXAMINEE = "examinee"
ADMIN = "admin"


@dataclass
class SessionPrincipal:
    """Who a session belongs to. subject_id is a credential id or admin id."""
    session_id: str
    kind: str
    subject_id: int
    username: str
    exam_id: Optional[int] = None
    exam_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.kind == ADMIN


@dataclass
class IssuedSession:
    token: str
    principal: SessionPrincipal
    expires_at: datetime


def _naive_utc(value: datetime) -> datetime:
    # SQLite hands back naive UTC datetimes
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def issue_session(
    kind: str,
    subject_id: int,
    username: str,
    exam_id: Optional[int] = None,
    exam_name: Optional[str] = None,
) -> IssuedSession:
    session_id = secrets.token_urlsafe(32)
    expires_at = session_expiry()
    with db_session() as session:
        session.add(
            PortalSession(
                id=session_id,
                kind=kind,
                subject_id=subject_id,
                username=username,
                exam_id=exam_id,
                exam_name=exam_name,
                expires_at=_naive_utc(expires_at),
            )
        )

    token = create_session_token(session_id, username, kind, expires_at)
    principal = SessionPrincipal(
        session_id=session_id,
        kind=kind,
        subject_id=subject_id,
        username=username,
        exam_id=exam_id,
        exam_name=exam_name,
    )
    return IssuedSession(token=token, principal=principal, expires_at=expires_at)


def resolve_session(token: str) -> Optional[SessionPrincipal]:
    """Return the live session behind ``token``, or None."""
    try:
        payload = decode_token(token)
    except JWTError:
        return None
    session_id = payload.get("sid")
    if not session_id:
        return None

    with db_session() as session:
        row = session.get(PortalSession, session_id)

    if row is None:
        return None
    if _naive_utc(row.expires_at) <= _naive_utc(datetime.now(timezone.utc)):
        return None
    return SessionPrincipal(
        session_id=row.id,
        kind=row.kind,
        subject_id=row.subject_id,
        username=row.username,
        exam_id=row.exam_id,
        exam_name=row.exam_name,
    )


def destroy_session(session_id: str) -> None:
    """Log out. Destroying an already-gone session is a no-op."""
    with db_session() as session:
        session.execute(delete(PortalSession).where(PortalSession.id == session_id))
    logger.info("Session %s… destroyed", session_id[:8])


def purge_expired() -> int:
    now = _naive_utc(datetime.now(timezone.utc))
    with db_session() as session:
        result = session.execute(delete(PortalSession).where(PortalSession.expires_at <= now))
        return result.rowcount
