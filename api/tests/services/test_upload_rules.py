"""Tests for upload validation helpers."""

import io
from pathlib import Path

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from app.services.uploads import (
    UploadRejected,
    detect_type,
    is_allowed,
    is_truthy,
    resolve_format,
    save_temp,
    unique_filename,
    validate_upload,
)


def _upload(filename: str, content_type: str, data: bytes = b"x") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class TestRules:
    """Format, type and allow-list rules."""

    def test_resolve_format(self):
        """Images are photos; videos are short or long."""
        assert resolve_format("image", "short") == "photo"
        assert resolve_format("video", "short") == "short"
        assert resolve_format("video", "long") == "long"
        assert resolve_format("video", None) == "long"
        assert resolve_format("video", "photo") == "long"

    def test_allow_list_needs_extension_and_mime(self):
        """Both the extension and the MIME type must be allowed."""
        assert is_allowed("a.mp4", "video/mp4")
        assert is_allowed("a.JPG", "image/jpeg")
        assert is_allowed("a.webm", "video/webm; codecs=vp9")
        assert not is_allowed("a.gif", "image/gif")
        assert not is_allowed("a.mp4", "text/plain")
        assert not is_allowed("a.mp4", "video/mp4", images_only=True)

    def test_detect_type(self):
        assert detect_type("image/png") == "image"
        assert detect_type("video/mp4") == "video"
        assert detect_type("text/plain") is None

    def test_is_truthy(self):
        """Form flags accept true, on and 1."""
        assert is_truthy("true") and is_truthy("on") and is_truthy("1")
        assert not is_truthy("false") and not is_truthy(None)

    def test_unique_filename_keeps_extension(self):
        first, second = unique_filename(".mp4"), unique_filename(".mp4")
        assert first.endswith(".mp4")
        assert first != second

    def test_validate_upload(self):
        """Missing and disallowed files are rejected with their messages."""
        with pytest.raises(UploadRejected, match="File is required"):
            validate_upload(None)
        with pytest.raises(UploadRejected, match="Unsupported file type"):
            validate_upload(_upload("a.exe", "application/octet-stream"))
        validate_upload(_upload("a.png", "image/png"), images_only=True)


class TestSaveTemp:
    """Streaming uploads to a temp file."""

    async def test_writes_file(self, tmp_path: Path):
        """The upload is written under the temp directory with its extension."""
        path = await save_temp(_upload("clip.mp4", "video/mp4", b"12345"), tmp_path, max_bytes=10)
        assert path.parent == tmp_path
        assert path.suffix == ".mp4"
        assert path.read_bytes() == b"12345"

    async def test_too_large_removes_partial_file(self, tmp_path: Path):
        """Exceeding the limit raises 413 and leaves nothing behind."""
        with pytest.raises(UploadRejected) as exc_info:
            await save_temp(_upload("clip.mp4", "video/mp4", b"x" * 20), tmp_path, max_bytes=10)
        assert exc_info.value.status_code == 413
        assert list(tmp_path.iterdir()) == []
