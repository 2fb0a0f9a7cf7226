"""
storage.py — Material content references
========================================
A material row only holds an opaque ``content_ref``: either a URL served
by a remote store or a path under ``upload_dir``. This module resolves
those references for the examinee file route and removes local content
when materials go away. Removal is best-effort; a failure is logged and
never blocks the row deletion that triggered it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import settings

logger = logging.getLogger("examportal.storage")


def is_remote(content_ref: str) -> bool:
    return content_ref.startswith(("http://", "https://"))


@dataclass
class ResolvedContent:
    url: Optional[str] = None
    path: Optional[Path] = None


def _local_path(content_ref: str) -> Optional[Path]:
    root = Path(settings.upload_dir).resolve()
    candidate = Path(content_ref)
    if not candidate.is_absolute():
        candidate = root / candidate
    candidate = candidate.resolve()
    if root != candidate and root not in candidate.parents:
        logger.warning("Refusing content reference outside upload dir: %s", content_ref)
        return None
    return candidate


def resolve_content(content_ref: str) -> Optional[ResolvedContent]:
    """Return where the bytes for ``content_ref`` live, or None if missing."""
    if is_remote(content_ref):
        return ResolvedContent(url=content_ref)
    path = _local_path(content_ref)
    if path is None or not path.is_file():
        return None
    return ResolvedContent(path=path)


def delete_content(content_ref: str) -> bool:
    """Remove local content for ``content_ref``. Returns True if a file was removed."""
    if is_remote(content_ref):
        # Remote objects are owned by the upload pipeline.
        logger.info("Skipping removal of remote material %s", content_ref)
        return False
    path = _local_path(content_ref)
    if path is None:
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Failed to remove material %s: %s", path, exc)
        return False
    logger.info("Removed material %s", path)
    return True
