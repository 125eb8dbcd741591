"""Forward Discord attachments to the backend upload endpoint."""

import logging
from pathlib import Path

import httpx

from app.auth.service_token import SERVICE_TOKEN_HEADER
from app.services.uploads import ALLOWED_EXTENSIONS, ALLOWED_MIME, file_extension, normalize_mime

logger = logging.getLogger(__name__)

EXTENSION_MIME = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
}


class RelayError(Exception):
    """Download or backend upload failed."""


def attachment_mime(filename: str | None, content_type: str | None) -> str:
    """The attachment's MIME type, guessed from the extension when Discord sends none."""
    return normalize_mime(content_type) or EXTENSION_MIME.get(file_extension(filename), "")


def is_allowed_attachment(filename: str | None, content_type: str | None) -> bool:
    extension = file_extension(filename)
    mime = attachment_mime(filename, content_type)
    allowed = extension in ALLOWED_EXTENSIONS and mime in ALLOWED_MIME
    if not allowed:
        logger.info(
            "Attachment rejected: name=%s ext=%s content_type=%s mime=%s",
            filename,
            extension,
            content_type,
            mime,
        )
    return allowed


def edit_link(frontend_base: str, post_id: int, token: str) -> str:
    return f"{frontend_base.rstrip('/')}/edit/{post_id}?token={token}"


class UploadRelay:
    """
    Downloads an attachment and re-posts it to ``/api/upload``.

    The backend trusts the Discord identity in the form fields because the
    request carries the shared service token.
    """

    def __init__(
        self,
        upload_url: str,
        service_token: str | None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 60.0,
    ):
        self.upload_url = upload_url
        self.service_token = service_token
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout, follow_redirects=True)

    async def download(self, client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url)
        if response.status_code != 200:
            raise RelayError(f"Failed to download attachment: {response.status_code}")
        return response.content

    async def send(
        self,
        client: httpx.AsyncClient,
        data: bytes,
        filename: str,
        content_type: str,
        discord_id: str,
        discord_name: str | None,
    ) -> dict:
        headers = {SERVICE_TOKEN_HEADER: self.service_token} if self.service_token else {}
        logger.info("Sending %s (%s, %d bytes) to %s", filename, content_type, len(data), self.upload_url)
        response = await client.post(
            self.upload_url,
            files={"file": (filename, data, content_type)},
            data={
                "uploaderDiscordId": discord_id,
                "uploaderDiscordName": discord_name or "Unknown",
            },
            headers=headers,
        )
        if not response.is_success:
            logger.warning("Backend rejected upload (%s): %s", response.status_code, response.text)
            raise RelayError(f"Backend error {response.status_code}: {response.text}")
        return response.json()

    async def relay(
        self,
        url: str,
        filename: str | None,
        content_type: str | None,
        discord_id: str,
        discord_name: str | None,
    ) -> dict:
        """Download ``url`` and upload it; returns the backend's JSON (``id``, ``editToken``, ...)."""
        name = filename or f"upload{Path(url).suffix}"
        mime = attachment_mime(name, content_type) or "application/octet-stream"
        async with self._client() as client:
            data = await self.download(client, url)
            return await self.send(client, data, name, mime, discord_id, discord_name)
