"""
auth/protocol.py — Login protocol
=================================
Examinee login walks a fixed sequence; the first failing step rejects:

  AWAITING_CREDENTIALS -> VALIDATED -> EXAM_CHECKED -> CONSUMED -> SESSION_ISSUED

  1. username and password present         (else missing_fields)
  2. client not locked out                 (else rate_limited)
  3. credential exists                     (else invalid_credentials, recorded)
  4. password matches                      (else invalid_credentials, recorded)
  5. credential not yet used               (else already_used)
  6. owning exam exists and is active      (else exam_inactive)
  7. credential consumed by *this* request (else already_used)
  8. client's failed attempts cleared
  9. examinee session issued, bound to the exam

Only mismatches count towards the lockout; a used credential or an
inactive exam is not a guessing signal.

Admin login swaps steps 3-7 for a bcrypt check of the admin password.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import select

from .. import credentials, exams
from .. import session_store
from ..database import db_session
from ..errors import AuthenticationError, RejectReason, ValidationError
from ..models import Admin, ExamMaterial
from ..rate_limit import LoginAttemptLimiter, login_attempts
from ..session_store import IssuedSession, SessionPrincipal
from ..telemetry.logger import log_login
from .core import hash_password, verify_password

logger = logging.getLogger("examportal.auth")

MIN_ADMIN_PASSWORD_LENGTH = 6


class LoginState(str, Enum):
    AWAITING_CREDENTIALS = "awaiting_credentials"
    VALIDATED = "validated"
    EXAM_CHECKED = "exam_checked"
    CONSUMED = "consumed"
    SESSION_ISSUED = "session_issued"
    REJECTED = "rejected"


@dataclass
class ClientInfo:
    """Network identity of the caller. ``key`` drives rate limiting."""
    key: str
    user_agent: Optional[str] = None


class _Attempt:
    """Tracks one login evaluation so every exit is logged the same way."""

    def __init__(self, kind: str, username: str, client: ClientInfo) -> None:
        self.kind = kind
        self.username = username
        self.client = client
        self.state = LoginState.AWAITING_CREDENTIALS

    def advance(self, state: LoginState) -> None:
        logger.debug("%s login %s: %s -> %s", self.kind, self.username, self.state.value, state.value)
        self.state = state

    def reject(self, reason: RejectReason) -> AuthenticationError:
        self.state = LoginState.REJECTED
        log_login(self.kind, self.username, reason.value, self.client.key, self.client.user_agent)
        return AuthenticationError(reason)

    def succeed(self) -> None:
        self.state = LoginState.SESSION_ISSUED
        log_login(self.kind, self.username, "success", self.client.key, self.client.user_agent)


def _require_fields(username: Optional[str], password: Optional[str]) -> None:
    if not username or not password:
        raise ValidationError(
            "Username and password are required.", reason=RejectReason.MISSING_FIELDS.value,
        )


# ---------------------------------------------------------------------------
# Examinee login
# ---------------------------------------------------------------------------

def authenticate_examinee(
    username: Optional[str],
    password: Optional[str],
    client: ClientInfo,
    limiter: LoginAttemptLimiter = login_attempts,
) -> IssuedSession:
    _require_fields(username, password)
    limiter.check(client.key)

    normalized = username.strip().upper()
    attempt = _Attempt(session_store.EXAMINEE, normalized, client)

    lookup = credentials.get_by_username(normalized)
    if lookup is None:
        limiter.record_attempt(client.key)
        raise attempt.reject(RejectReason.INVALID_CREDENTIALS)

    cred = lookup.credential
    # Plaintext compare is deliberate for examinee tokens; see credentials.py.
    if not secrets.compare_digest(cred.password.encode(), password.encode()):
        limiter.record_attempt(client.key)
        raise attempt.reject(RejectReason.INVALID_CREDENTIALS)
    attempt.advance(LoginState.VALIDATED)

    if cred.is_used:
        raise attempt.reject(RejectReason.ALREADY_USED)

    exam = exams.find_by_id(cred.exam_id)
    if exam is None or not exam.is_active:
        raise attempt.reject(RejectReason.EXAM_INACTIVE)
    attempt.advance(LoginState.EXAM_CHECKED)

    if not credentials.consume(cred.id):
        # Lost the race to a concurrent login with the same credential.
        raise attempt.reject(RejectReason.ALREADY_USED)
    attempt.advance(LoginState.CONSUMED)

    limiter.clear_attempts(client.key)

    issued = session_store.issue_session(
        session_store.EXAMINEE,
        subject_id=cred.id,
        username=cred.username,
        exam_id=cred.exam_id,
        exam_name=lookup.exam_name,
    )
    attempt.succeed()
    return issued


# ---------------------------------------------------------------------------
# Admin login
# ---------------------------------------------------------------------------

def _get_admin(username: str) -> Optional[Admin]:
    with db_session() as session:
        return session.execute(
            select(Admin).where(Admin.username == username)
        ).scalar_one_or_none()


def authenticate_admin(
    username: Optional[str],
    password: Optional[str],
    client: ClientInfo,
    limiter: LoginAttemptLimiter = login_attempts,
) -> IssuedSession:
    _require_fields(username, password)
    limiter.check(client.key)

    attempt = _Attempt(session_store.ADMIN, username, client)

    admin = _get_admin(username)
    if admin is None or not verify_password(password, admin.password_hash):
        limiter.record_attempt(client.key)
        raise attempt.reject(RejectReason.INVALID_CREDENTIALS)

    limiter.clear_attempts(client.key)
    issued = session_store.issue_session(session_store.ADMIN, subject_id=admin.id, username=admin.username)
    attempt.succeed()
    return issued


def change_admin_password(
    admin_id: int,
    current_password: Optional[str],
    new_password: Optional[str],
    confirm_password: Optional[str],
) -> None:
    if not current_password or not new_password or not confirm_password:
        raise ValidationError("All fields are required.")
    if new_password != confirm_password:
        raise ValidationError("New passwords do not match.")
    if len(new_password) < MIN_ADMIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_ADMIN_PASSWORD_LENGTH} characters."
        )

    with db_session() as session:
        admin = session.get(Admin, admin_id)
        if admin is None or not verify_password(current_password, admin.password_hash):
            raise AuthenticationError(RejectReason.INVALID_CREDENTIALS)
        admin.password_hash = hash_password(new_password)
    logger.info("Admin %s changed password", admin_id)


# ---------------------------------------------------------------------------
# Material access
# ---------------------------------------------------------------------------

def authorize_material(principal: SessionPrincipal, material: ExamMaterial) -> None:
    """
    Examinee sessions may only read materials of the exam they logged in
    for. Session possession is enough; the credential is not re-checked.
    """
    if principal.kind != session_store.EXAMINEE or principal.exam_id != material.exam_id:
        raise AuthenticationError(RejectReason.FORBIDDEN)
