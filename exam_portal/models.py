from __future__ import annotations

from datetime import date as date_type, datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Admin(Base):
    """Portal administrator. Passwords are stored as bcrypt hashes only."""

    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(256))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)


class Exam(Base):
    """An exam sitting. At most one row has is_active set at any time."""

    __tablename__ = "exams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(256))
    date: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)

    credentials: Mapped[List["Credential"]] = relationship(
        back_populates="exam", cascade="all, delete-orphan", passive_deletes=True,
    )
    materials: Mapped[List["ExamMaterial"]] = relationship(
        back_populates="exam", cascade="all, delete-orphan", passive_deletes=True,
    )


class Credential(Base):
    """Single-use examinee login bound to one exam.

    The password is kept in plaintext on purpose: it is a short, low-entropy
    token dictated to the examinee and valid for one login only. Admin
    passwords, by contrast, are never stored unhashed.
    """

    __tablename__ = "credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    exam_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exams.id", ondelete="CASCADE"), index=True,
    )
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    password: Mapped[str] = mapped_column(String(32))
    examinee_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    exam: Mapped[Exam] = relationship(back_populates="credentials")


class ExamMaterial(Base):
    """Image or PDF attached to an exam. content_ref is a local path or a URL."""

    __tablename__ = "exam_materials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    exam_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exams.id", ondelete="CASCADE"), index=True,
    )
    display_name: Mapped[str] = mapped_column(String(256))
    filename: Mapped[str] = mapped_column(String(256))
    content_ref: Mapped[str] = mapped_column(Text)
    file_type: Mapped[str] = mapped_column(String(16))  # pdf | image
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    exam: Mapped[Exam] = relationship(back_populates="materials")


class PortalSession(Base):
    """Server-side half of a session token. Deleting the row logs the client out."""

    __tablename__ = "portal_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), index=True)  # examinee | admin
    subject_id: Mapped[int] = mapped_column(Integer, index=True)
    username: Mapped[str] = mapped_column(String(128))
    exam_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    exam_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)


class LoginEvent(Base):
    """Tracks every login attempt that reached the protocol."""

    __tablename__ = "login_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    kind: Mapped[str] = mapped_column(String(16), index=True)  # examinee | admin
    username: Mapped[str] = mapped_column(String(128), index=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    outcome: Mapped[str] = mapped_column(String(32), index=True)  # success | <reject reason>
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, index=True)
