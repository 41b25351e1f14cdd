"""
Local file storage for uploads.

Resumes and cover letters must be real PDFs (PyPDF2 has to be able to open
them); avatars must be images. Files land under UPLOAD_DIR in a folder per
kind and are served back from /uploads.
"""

import io
import logging
import re
import time
import uuid
from pathlib import Path

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from internhub.config import settings
from internhub.errors import ValidationFailedError

logger = logging.getLogger(__name__)

# kind -> folder under UPLOAD_DIR
UPLOAD_FOLDERS = {
    "cover-letter": "applications/cover-letters",
    "resume": "applications/resumes",
    "profile-resume": "intern-profile/resume",
    "avatar": "avatars",
}

IMAGE_TYPES = {"image/png", "image/jpeg", "image/webp", "image/gif"}


def _safe_name(filename: str) -> str:
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", Path(filename).name).strip("._")
    return name or "upload"


def is_readable_pdf(data: bytes) -> bool:
    """True when PyPDF2 can parse the bytes and find at least one page."""
    try:
        reader = PdfReader(io.BytesIO(data))
        return len(reader.pages) > 0
    except (PdfReadError, ValueError, OSError):
        return False


def validate_upload(kind: str, filename: str, content_type: str | None, data: bytes) -> None:
    if not data:
        raise ValidationFailedError("The uploaded file is empty.")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise ValidationFailedError(f"File size must be less than {limit_mb}MB")

    if kind == "avatar":
        if content_type not in IMAGE_TYPES:
            raise ValidationFailedError("Invalid file type. Only PNG, JPG, WEBP, or GIF images are allowed.")
        return

    if not filename.lower().endswith(".pdf") or not is_readable_pdf(data):
        raise ValidationFailedError("Invalid file type. Only PDF files are allowed.")


def save_upload(kind: str, filename: str, data: bytes) -> tuple[str, str]:
    """
    Write the bytes to disk.
    Returns (public path under /uploads, stored file name).
    """
    folder = UPLOAD_FOLDERS[kind]
    target_dir = Path(settings.UPLOAD_DIR) / folder
    target_dir.mkdir(parents=True, exist_ok=True)

    stored_name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}-{_safe_name(filename)}"
    (target_dir / stored_name).write_bytes(data)
    logger.info("Stored %s upload as %s/%s", kind, folder, stored_name)
    return f"/uploads/{folder}/{stored_name}", stored_name
