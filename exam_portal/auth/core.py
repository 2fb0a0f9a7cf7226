from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import jwt

from ..config import settings

# ---------------------------------------------------------------------------
# Password hashing (admins only; examinee passwords are plaintext tokens)
# ---------------------------------------------------------------------------

def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------

ALGORITHM = "HS256"


def create_session_token(
    session_id: str,
    subject: str,
    kind: str,
    expires_at: datetime,
) -> str:
    payload = {
        "sub": subject,          # username
        "sid": session_id,
        "kind": kind,
        "exp": expires_at,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a session token. Raises JWTError on failure."""
    return jwt.decode(token, settings.session_secret, algorithms=[ALGORITHM])


def session_expiry(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(minutes=settings.session_ttl_minutes)
