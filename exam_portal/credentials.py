"""
credentials.py — Credential store
=================================
Mints, looks up, consumes and resets single-use examinee credentials.

Examinee passwords are stored and compared in plaintext. They are short
tokens read out to the examinee, valid for exactly one login, and must be
printable for distribution. Admin passwords are handled in auth/core.py
and are only ever stored as bcrypt hashes.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from .database import db_session
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Credential, Exam

logger = logging.getLogger("examportal.credentials")

# No 0/O or 1/I so passwords survive being read aloud.
PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_BATCH = 100


@dataclass
class GeneratedCredential:
    username: str
    password: str


@dataclass
class CredentialLookup:
    """A credential row together with the name of its owning exam."""
    credential: Credential
    exam_name: str


@dataclass
class CredentialListing:
    credentials: List[Credential]
    total: int
    used: int


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def _random_block(length: int = 4) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def generate_password() -> str:
    """Random ``XXXX-XXXX`` token."""
    return f"{_random_block()}-{_random_block()}"


def generate_username(exam_id: int, index: int, prefix: Optional[str] = None) -> str:
    if prefix:
        return f"{prefix.upper()}{index:03d}"
    return f"EXAM{exam_id:02d}{index:03d}"


def generate_batch(
    exam_id: Optional[int],
    count: Optional[int],
    prefix: Optional[str] = None,
) -> List[GeneratedCredential]:
    """
    Insert ``count`` new credentials for ``exam_id`` and return them in
    plaintext. Numbering continues after the exam's existing credentials
    (count + 1), so once a credential has been deleted the default
    ``EXAMnnNNN`` scheme can collide with a surviving username; pass a
    ``prefix`` to start a fresh series. The whole batch is one transaction:
    a username clash inserts nothing.
    """
    if not exam_id:
        raise ValidationError("Exam ID is required.")
    if count is None or not 1 <= count <= MAX_BATCH:
        raise ValidationError(f"Count must be between 1 and {MAX_BATCH}.")
    prefix = (prefix or "").strip() or None

    generated: List[GeneratedCredential] = []
    with db_session() as session:
        if session.get(Exam, exam_id) is None:
            raise NotFoundError("Exam not found.")
        existing = session.execute(
            select(func.count(Credential.id)).where(Credential.exam_id == exam_id)
        ).scalar_one()

        for index in range(existing + 1, existing + count + 1):
            item = GeneratedCredential(
                username=generate_username(exam_id, index, prefix),
                password=generate_password(),
            )
            session.add(Credential(exam_id=exam_id, username=item.username, password=item.password))
            generated.append(item)

        try:
            session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                "A generated username already exists for this series. "
                "Generate with a different prefix to start a new series."
            ) from exc

    logger.info("Generated %d credentials for exam %s", count, exam_id)
    return generated


def create_one(
    exam_id: Optional[int],
    username: Optional[str],
    password: Optional[str],
    examinee_name: Optional[str] = None,
) -> Credential:
    """Store an admin-entered credential. Usernames are upper-cased."""
    username = (username or "").strip().upper()
    if not exam_id or not username or not password:
        raise ValidationError("Missing required fields.")

    with db_session() as session:
        if session.get(Exam, exam_id) is None:
            raise NotFoundError("Exam not found.")
        row = Credential(
            exam_id=exam_id,
            username=username,
            password=password,
            examinee_name=examinee_name or None,
        )
        session.add(row)
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConflictError("Username already exists.") from exc
        session.refresh(row)
        return row


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

def get_by_username(username: str) -> Optional[CredentialLookup]:
    with db_session() as session:
        row = session.execute(
            select(Credential, Exam.name)
            .join(Exam, Credential.exam_id == Exam.id)
            .where(Credential.username == username.strip().upper())
        ).one_or_none()
    if row is None:
        return None
    return CredentialLookup(credential=row[0], exam_name=row[1])


def list_for_exam(exam_id: int) -> CredentialListing:
    with db_session() as session:
        rows = session.execute(
            select(Credential)
            .where(Credential.exam_id == exam_id)
            .order_by(Credential.username)
        ).scalars().all()
    used = sum(1 for r in rows if r.is_used)
    return CredentialListing(credentials=list(rows), total=len(rows), used=used)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def consume(credential_id: int) -> bool:
    """
    Mark a credential used. Returns True only for the call that performed
    the unused -> used transition.

    This is one conditional UPDATE checked by row count, never a read
    followed by a write, so concurrent logins with the same credential
    cannot both succeed.
    """
    with db_session() as session:
        result = session.execute(
            update(Credential)
            .where(Credential.id == credential_id)
            .where(Credential.is_used.is_(False))
            .values(is_used=True, used_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        consumed = result.rowcount == 1

    if not consumed:
        logger.info("Credential %s was already consumed", credential_id)
    return consumed


def reset(credential_id: int) -> None:
    """Admin override: make a used credential usable again."""
    with db_session() as session:
        result = session.execute(
            update(Credential)
            .where(Credential.id == credential_id)
            .values(is_used=False, used_at=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Credential not found.")
    logger.info("Credential %s reset", credential_id)


def update_examinee_name(credential_id: int, examinee_name: Optional[str]) -> None:
    with db_session() as session:
        row = session.get(Credential, credential_id)
        if row is None:
            raise NotFoundError("Credential not found.")
        row.examinee_name = examinee_name or None


def delete_one(credential_id: int) -> None:
    with db_session() as session:
        result = session.execute(delete(Credential).where(Credential.id == credential_id))
        if result.rowcount == 0:
            raise NotFoundError("Credential not found.")


def delete_by_exam(exam_id: int) -> int:
    with db_session() as session:
        result = session.execute(delete(Credential).where(Credential.exam_id == exam_id))
        removed = result.rowcount
    logger.info("Deleted %d credentials for exam %s", removed, exam_id)
    return removed
