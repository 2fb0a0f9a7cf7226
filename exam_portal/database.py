from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from .config import settings
from .errors import PersistenceError

logger = logging.getLogger("examportal.db")


class Base(DeclarativeBase):
    pass


def _build_engine(url: str):
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        database = make_url(url).database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)

    eng = create_engine(
        url,
        echo=settings.log_sql,
        future=True,
        connect_args=(
            {"check_same_thread": False, "timeout": settings.db_timeout_seconds}
            if is_sqlite else {}
        ),
    )

    if is_sqlite:
        # SQLite ships with FK enforcement off; cascades depend on it.
        @event.listens_for(eng, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return eng


engine = _build_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def db_session():
    """Context-manager style session with automatic commit/rollback.

    Storage failures are logged in full and re-raised as an opaque
    PersistenceError.
    """
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Database operation failed: %s", exc)
        raise PersistenceError("Storage operation failed.") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
