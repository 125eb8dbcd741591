"""Media storage: local disk for development, Cloudinary in production."""

import asyncio
import logging
import os
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

import cloudinary
import cloudinary.uploader

from app.config import settings

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/uploads/"


class Storage:
    """Interface shared by the storage backends."""

    async def upload(self, path: Path, filename: str, media_type: str) -> str:
        """Persist the temp file at ``path`` and return its storage reference."""
        raise NotImplementedError

    def url(self, reference: str | None) -> str | None:
        """Public URL for a storage reference."""
        raise NotImplementedError

    async def delete(self, reference: str | None, media_type: str) -> None:
        raise NotImplementedError


class LocalStorage(Storage):
    """Files stay in the uploads directory and are served from ``/uploads``."""

    def __init__(self, uploads_dir: str | Path):
        self.uploads_dir = Path(uploads_dir)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)

    async def upload(self, path: Path, filename: str, media_type: str) -> str:
        target = self.uploads_dir / filename
        if Path(path).resolve() != target.resolve():
            await asyncio.to_thread(os.replace, path, target)
        return filename

    def url(self, reference: str | None) -> str | None:
        if not reference:
            return None
        if reference.startswith(("http://", "https://", LOCAL_URL_PREFIX)):
            return reference
        return f"{LOCAL_URL_PREFIX}{reference}"

    async def delete(self, reference: str | None, media_type: str) -> None:
        if not reference:
            return
        name = Path(reference.removeprefix(LOCAL_URL_PREFIX)).name
        try:
            (self.uploads_dir / name).unlink()
        except FileNotFoundError:
            logger.info("Stored file %s already removed", name)


class CloudinaryStorage(Storage):
    """Uploads to Cloudinary; the reference is the returned secure URL."""

    def __init__(self, cloud_name: str, api_key: str | None, api_secret: str | None, folder: str):
        self.folder = folder
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    async def upload(self, path: Path, filename: str, media_type: str) -> str:
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                str(path),
                public_id=Path(filename).stem,
                resource_type="auto",
                folder=self.folder,
            )
        finally:
            Path(path).unlink(missing_ok=True)
        return result["secure_url"]

    def url(self, reference: str | None) -> str | None:
        return reference or None

    @staticmethod
    def public_id_from_url(url: str) -> str | None:
        """``.../upload/v123/<folder>/<name>.mp4`` -> ``<folder>/<name>``."""
        parts = urlparse(url).path.split("/upload/", 1)
        if len(parts) != 2:
            return None
        segments = parts[1].split("/")
        if segments and segments[0].startswith("v") and segments[0][1:].isdigit():
            segments = segments[1:]
        if not segments:
            return None
        segments[-1] = Path(segments[-1]).stem
        return "/".join(segments)

    async def delete(self, reference: str | None, media_type: str) -> None:
        public_id = self.public_id_from_url(reference) if reference else None
        if not public_id:
            return
        await asyncio.to_thread(
            cloudinary.uploader.destroy,
            public_id,
            resource_type="video" if media_type == "video" else "image",
        )


@lru_cache
def get_storage() -> Storage:
    """Storage backend selected by configuration."""
    if settings.storage_backend == "cloudinary":
        logger.info("Using Cloudinary storage (folder=%s)", settings.cloudinary_folder)
        return CloudinaryStorage(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
            settings.cloudinary_folder,
        )
    logger.info("Using local storage in %s", settings.uploads_dir)
    return LocalStorage(settings.uploads_dir)
