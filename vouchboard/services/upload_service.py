"""
vouchboard.services.upload_service — Product image files
=========================================================

Product images uploaded with the catalog form are stored in a
configurable ``uploads/`` directory (Docker volume) and served by the API
under ``/uploads``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from pathlib import Path

from vouchboard.errors import UploadRejectedError

logger = logging.getLogger(__name__)

UPLOAD_DIR = Path(os.getenv("VOUCHBOARD_UPLOAD_DIR", "uploads"))
UPLOAD_URL_PREFIX = "/uploads/"
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
ALLOWED_MIME_TYPES = {
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
}


def ensure_upload_dir() -> None:
    """Create the upload directory if it doesn't exist."""
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)


async def save_upload(filename: str, content: bytes, content_type: str | None = None) -> str:
    """Validate and persist an uploaded image.

    Returns
    -------
    str
        URL path of the stored file (e.g. ``/uploads/abc123.png``).

    Raises
    ------
    UploadRejectedError
        If the file is too large or not an allowed image type.
    """
    reason = None
    ext = Path(filename).suffix.lower()
    if len(content) > MAX_FILE_SIZE:
        reason = f"File too large: {len(content)} bytes (max {MAX_FILE_SIZE // 1024 // 1024}MB)"
    elif ext not in ALLOWED_EXTENSIONS:
        reason = (
            f"File type not allowed: {ext!r}. "
            f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )
    elif content_type and content_type not in ALLOWED_MIME_TYPES:
        reason = f"MIME type not allowed: {content_type!r}."
    if reason:
        logger.warning("Rejected upload %r: %s", filename, reason)
        raise UploadRejectedError(reason)

    unique_name = f"{uuid.uuid4().hex}{ext}"
    ensure_upload_dir()
    await asyncio.to_thread((UPLOAD_DIR / unique_name).write_bytes, content)
    logger.info("Stored upload %r as %s (%d bytes)", filename, unique_name, len(content))

    return f"{UPLOAD_URL_PREFIX}{unique_name}"


def is_stored_upload(image: str | None) -> bool:
    """True when *image* points at a file this service stored."""
    return bool(image) and image.startswith(UPLOAD_URL_PREFIX)


def delete_upload(url_path: str) -> bool:
    """Remove a stored image by its URL path.

    Returns True if the file existed and was deleted.  External URLs and
    missing files are ignored.
    """
    if not is_stored_upload(url_path):
        return False
    filepath = UPLOAD_DIR / url_path.rsplit("/", 1)[-1]
    if filepath.exists() and filepath.is_file():
        filepath.unlink()
        logger.info("Removed upload %s", filepath.name)
        return True
    return False
