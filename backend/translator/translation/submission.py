"""Task submission: local validation, provider handoff and temp file cleanup."""
import logging
from pathlib import Path
from typing import Optional

from translator.config import ALLOWED_CONTENT_TYPES, MAX_PDF_SIZE_BYTES, MAX_PDF_SIZE_MB
from translator.errors import PayloadTooLargeError, UnsupportedFileTypeError, ValidationError
from translator.translation.models import SubmissionOptions, SubmissionResult
from translator.translation.provider import TranslationProvider

logger = logging.getLogger("translator.submission")


def validate_content_type(content_type: Optional[str]) -> None:
    ctype = (content_type or "").split(";", 1)[0].strip().lower()
    if ctype not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedFileTypeError(f"Only PDF files are allowed (got {ctype or 'unknown type'})")


def validate_size(size: int, max_bytes: int = MAX_PDF_SIZE_BYTES) -> None:
    if size <= 0:
        raise ValidationError("No PDF file provided")
    if size > max_bytes:
        raise PayloadTooLargeError(f"File size exceeds the {max_bytes // (1024 * 1024)} MB limit")


def validate_upload(size: int, content_type: Optional[str], max_bytes: int = MAX_PDF_SIZE_BYTES) -> None:
    """Fail fast on type or size, before any network call."""
    validate_content_type(content_type)
    validate_size(size, max_bytes)


def cleanup_upload(path: Path) -> None:
    """Remove the temporary upload copy."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove upload %s: %s", path, e)


async def submit_translation(
    provider: TranslationProvider,
    path: Path,
    filename: str,
    options: SubmissionOptions,
    content_type: Optional[str] = "application/pdf",
    max_bytes: int = MAX_PDF_SIZE_BYTES,
) -> SubmissionResult:
    """Validate and hand the file to the provider. The temp file at path is removed on every exit path."""
    try:
        size = path.stat().st_size if path.is_file() else 0
        validate_upload(size, content_type, max_bytes)
        logger.info("Submitting %s (%s bytes, limit %s MB)", filename, size, MAX_PDF_SIZE_MB)
        return await provider.create_task(path, filename, options)
    finally:
        cleanup_upload(path)
