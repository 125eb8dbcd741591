"""Media upload endpoint used by the web uploader and the Discord bot."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_optional_user
from app.auth.service_token import SERVICE_TOKEN_HEADER, verify_service_token
from app.config import settings
from app.database import get_db
from app.middleware.rate_limit import limiter
from app.models.post import Post
from app.models.user import User, utcnow
from app.schemas.posts import UploadResponse
from app.services import users
from app.services.storage import Storage, get_storage
from app.services.uploads import (
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    UploadRejected,
    clean_text,
    detect_type,
    discard,
    generate_edit_token,
    is_truthy,
    resolve_format,
    save_temp,
    validate_upload,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Uploads"])


def _banned() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your account has been banned")


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.upload_rate_limit)
async def upload_media(
    request: Request,
    file: UploadFile | None = File(default=None),
    thumbnail: UploadFile | None = File(default=None),
    title: str = Form(default=""),
    description: str = Form(default=""),
    format: str | None = Form(default=None),
    publish: str | None = Form(default=None),
    uploader_discord_id: str | None = Form(default=None, alias="uploaderDiscordId"),
    uploader_discord_name: str | None = Form(default=None, alias="uploaderDiscordName"),
    service_token: str | None = Header(default=None, alias=SERVICE_TOKEN_HEADER),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    storage: Storage = Depends(get_storage),
) -> UploadResponse:
    """
    Accept a photo or video (plus an optional thumbnail) and create a post.

    The uploader is the session user, or for the bot a Discord identity named
    in the form fields and vouched for by the service token. Files are checked
    against the allow-list before anything is written; the post is a draft
    unless ``publish`` is set.
    """
    if viewer is None and getattr(request.state, "session_banned", False):
        raise _banned()

    via_bot = viewer is None and verify_service_token(service_token)
    if viewer is None and not via_bot:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Login required")

    if via_bot:
        if not uploader_discord_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="uploaderDiscordId is required",
            )
        existing = await users.get_user_by_discord_id(db, uploader_discord_id)
        if existing is not None and existing.is_banned:
            raise _banned()

    has_thumbnail = thumbnail is not None and bool(thumbnail.filename)
    try:
        validate_upload(file)
        if has_thumbnail:
            validate_upload(thumbnail, images_only=True)
    except UploadRejected as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    media_type = detect_type(file.content_type)
    temp_dir = Path(settings.uploads_dir)
    temp_file = temp_thumb = None
    try:
        temp_file = await save_temp(file, temp_dir, settings.max_upload_bytes)
        if has_thumbnail:
            temp_thumb = await save_temp(thumbnail, temp_dir, settings.max_upload_bytes)
    except UploadRejected as exc:
        discard(temp_file, temp_thumb)
        logger.info("Rejected upload %s: %s", file.filename, exc.message)
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    file_ref = thumb_ref = None
    try:
        file_ref = await storage.upload(temp_file, temp_file.name, media_type)
        if temp_thumb is not None:
            thumb_ref = await storage.upload(temp_thumb, temp_thumb.name, "image")
    except Exception as exc:
        logger.exception("Storage upload failed for %s", file.filename)
        discard(temp_file, temp_thumb)
        if file_ref is not None:
            await storage.delete(file_ref, media_type)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save file",
        ) from exc

    try:
        uploader = viewer or await users.upsert_discord_user(db, uploader_discord_id, uploader_discord_name)
        post = Post(
            file_url=file_ref,
            thumbnail_url=thumb_ref,
            media_type=media_type,
            format=resolve_format(media_type, format),
            title=clean_text(title, TITLE_MAX_LENGTH),
            description=clean_text(description, DESCRIPTION_MAX_LENGTH),
            owner_id=uploader.id,
            uploader_name=uploader.username,
            status="published" if is_truthy(publish) else "draft",
            edit_token=generate_edit_token(),
            created_at=utcnow(),
        )
        db.add(post)
        await db.flush()
    except Exception:
        logger.exception("Post insert failed for %s; removing stored media", file.filename)
        await storage.delete(file_ref, media_type)
        await storage.delete(thumb_ref, "image")
        raise

    logger.info(
        "Upload accepted post=%s owner=%s type=%s format=%s via=%s",
        post.id,
        uploader.id,
        media_type,
        post.format,
        "bot" if via_bot else "web",
    )

    return UploadResponse(
        id=post.id,
        edit_token=post.edit_token,
        file_url=storage.url(post.file_url),
        thumbnail_url=storage.url(post.thumbnail_url),
        type=post.media_type,
        format=post.format,
        status=post.status,
    )
