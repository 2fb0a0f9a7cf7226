from __future__ import annotations

import logging
import sys

from sqlalchemy import select

from .core import hash_password
from ..config import settings
from ..database import db_session
from ..models import Admin

logger = logging.getLogger("examportal.auth")

_DEFAULT_PASSWORD = "admin123"


def seed_admin() -> None:
    """
    Create the bootstrap admin account on first startup if no admins exist.
    Credentials come from EXAMPORTAL_ADMIN_USERNAME / EXAMPORTAL_ADMIN_PASSWORD
    so they can be overridden before deployment.
    """
    username = settings.admin_username
    password = settings.admin_password

    with db_session() as session:
        existing = session.execute(select(Admin).limit(1)).scalar_one_or_none()
        if existing:
            return  # Admins already seeded — don't overwrite

        if password == _DEFAULT_PASSWORD:
            print(
                "\n⚠️  WARNING: Seeding admin with DEFAULT password 'admin123'.\n"
                "   Set EXAMPORTAL_ADMIN_PASSWORD before deploying to production.\n",
                file=sys.stderr,
            )
            if settings.environment != "development":
                print(
                    "🚨 REFUSING to seed default password in non-development "
                    f"environment ({settings.environment}).\n"
                    "   Set EXAMPORTAL_ADMIN_PASSWORD env var.\n",
                    file=sys.stderr,
                )
                return

        session.add(Admin(username=username, password_hash=hash_password(password)))
    logger.info("Default admin created: %s", username)
