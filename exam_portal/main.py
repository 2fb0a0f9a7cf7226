from __future__ import annotations

import logging
import sys

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pythonjsonlogger import jsonlogger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import Base, engine
from .errors import PortalError, RateLimitedError
from .rate_limit import limiter
from . import models  # noqa: F401 — registers ORM mappings with Base.metadata
from .api import routes_admin, routes_exam
from .auth.routes_auth import router as auth_router
from .auth.seed import seed_admin
from .session_store import purge_expired

# ---------------------------------------------------------------------------
# Structured logging
# ---------------------------------------------------------------------------

def _configure_logging() -> None:
    """Configure structured JSON logging when log_format=json (default)."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                "%(asctime)s %(name)s %(levelname)s %(message)s",
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)

_configure_logging()

# Initialise database tables on startup
Base.metadata.create_all(bind=engine)

# Seed default admin if none exist
seed_admin()

# Drop sessions that expired while the service was down
_purged = purge_expired()
if _purged:
    logging.getLogger("examportal.sessions").info("Purged %d expired sessions", _purged)

app = FastAPI(
    title="Exam Portal",
    version="1.0.0",
    description=(
        "Exam credential and material distribution portal. Administrators issue "
        "single-use examinee credentials for the active exam; examinees log in "
        "once to view that exam's materials."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(PortalError)
def _portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_minutes * 60)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message},
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Auth guards and unknown routes use the same {"error": ...} body as PortalError.
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(routes_admin.router)
app.include_router(routes_exam.router)


@app.get("/", tags=["meta"])
def root() -> dict:
    return {"status": "ok", "service": "exam-portal", "version": "1.0.0"}


@app.get("/health", tags=["meta"])
def health() -> dict:
    return {"status": "healthy"}
