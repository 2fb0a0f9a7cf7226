from __future__ import annotations

import logging
from typing import Optional

from ..database import db_session
from ..errors import PersistenceError
from ..models import LoginEvent

logger = logging.getLogger("examportal.auth")


def log_login(
    kind: str,
    username: str,
    outcome: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> None:
    """
    Persist a login attempt to the audit log.

    ``outcome`` is "success" or the reject reason. The audit write never
    changes the login result: if storage fails, the failure is logged
    and the attempt goes unrecorded.
    """
    level = logging.INFO if outcome == "success" else logging.WARNING
    logger.log(level, "%s login %s: %s (ip=%s)", kind, username, outcome, ip_address)

    try:
        with db_session() as session:
            session.add(
                LoginEvent(
                    kind=kind,
                    username=username[:128],
                    ip_address=ip_address,
                    user_agent=(user_agent or "")[:512] or None,
                    outcome=outcome,
                )
            )
    except PersistenceError:
        logger.warning("Login event for %s not recorded", username)
