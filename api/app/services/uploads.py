"""Upload validation and temp-file handling."""

import logging
import secrets
import time
import uuid
from pathlib import Path

from fastapi import UploadFile

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
VIDEO_EXTENSIONS = {".mp4", ".webm"}
ALLOWED_EXTENSIONS = IMAGE_EXTENSIONS | VIDEO_EXTENSIONS

IMAGE_MIME = {"image/jpeg", "image/png", "image/webp"}
VIDEO_MIME = {"video/mp4", "video/webm"}
ALLOWED_MIME = IMAGE_MIME | VIDEO_MIME

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
CHUNK_SIZE = 1024 * 1024
TRUTHY_FORM_VALUES = {"true", "on", "1", "yes"}


class UploadRejected(Exception):
    """An upload failed validation; carries the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def file_extension(filename: str | None) -> str:
    return Path(filename or "").suffix.lower()


def normalize_mime(content_type: str | None) -> str:
    # "video/mp4; codecs=..." -> "video/mp4"
    return (content_type or "").split(";", 1)[0].strip().lower()


def is_allowed(filename: str | None, content_type: str | None, images_only: bool = False) -> bool:
    """Both the extension and the MIME type must be on the allow-list."""
    extensions = IMAGE_EXTENSIONS if images_only else ALLOWED_EXTENSIONS
    mime_types = IMAGE_MIME if images_only else ALLOWED_MIME
    return file_extension(filename) in extensions and normalize_mime(content_type) in mime_types


def detect_type(content_type: str | None) -> str | None:
    mime = normalize_mime(content_type)
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    return None


def resolve_format(media_type: str, requested: str | None) -> str:
    """Images are always photos; videos are short only when asked for."""
    if media_type == "image":
        return "photo"
    return "short" if requested == "short" else "long"


def clean_text(value: str | None, max_length: int) -> str:
    return str(value or "").strip()[:max_length]


def is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in TRUTHY_FORM_VALUES


def generate_edit_token() -> str:
    return secrets.token_hex(24)


def unique_filename(extension: str) -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4()}{extension}"


def validate_upload(upload: UploadFile | None, images_only: bool = False) -> None:
    """Reject missing or disallowed files before anything touches disk."""
    if upload is None or not upload.filename:
        raise UploadRejected("File is required")
    if not is_allowed(upload.filename, upload.content_type, images_only=images_only):
        logger.info(
            "Rejected upload name=%s content_type=%s", upload.filename, upload.content_type
        )
        raise UploadRejected("Unsupported file type")


async def save_temp(upload: UploadFile, directory: Path, max_bytes: int) -> Path:
    """
    Stream an upload into ``directory`` under a unique name.

    The partial file is removed if the size limit is exceeded or writing fails.
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / unique_filename(file_extension(upload.filename))
    written = 0
    try:
        with open(path, "wb") as out:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise UploadRejected("File too large", status_code=413)
                out.write(chunk)
    except Exception:
        path.unlink(missing_ok=True)
        raise
    return path


def discard(*paths: Path | None) -> None:
    """Remove temp files left behind by a failed upload."""
    for path in paths:
        if path is not None:
            path.unlink(missing_ok=True)
