"""Users router for profiles, follows and the caller's own profile."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, get_optional_user
from app.auth.jwt import create_session_token, set_session_cookie
from app.config import settings
from app.database import get_db
from app.models.user import User
from app.schemas.auth import SessionUser
from app.schemas.base import to_iso
from app.schemas.posts import ListPostsResponse, build_feed
from app.schemas.social import FollowRequest, FollowResponse
from app.schemas.users import UpdateProfileResponse, UserProfileResponse
from app.services import feed, social, users
from app.services.storage import Storage, get_storage
from app.services.uploads import UploadRejected, discard, save_temp, validate_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["Users"])


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await users.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("/me/profile", response_model=UpdateProfileResponse)
async def update_my_profile(
    response: Response,
    username: str | None = Form(default=None),
    avatar: UploadFile | None = File(default=None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> UpdateProfileResponse:
    """
    Update the caller's display name and/or avatar image.

    The session cookie is re-signed so the new name shows up immediately.
    """
    if username is not None:
        cleaned = username.strip()[: users.USERNAME_MAX_LENGTH]
        if not cleaned:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username cannot be empty")
        user.username = cleaned

    if avatar is not None and avatar.filename:
        try:
            validate_upload(avatar, images_only=True)
            temp = await save_temp(avatar, Path(settings.uploads_dir), settings.max_upload_bytes)
        except UploadRejected as exc:
            raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
        try:
            reference = await storage.upload(temp, temp.name, "image")
        except Exception as exc:
            logger.exception("Storage upload failed for avatar of user %s", user.id)
            discard(temp)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to save file",
            ) from exc
        user.avatar = storage.url(reference)

    await db.flush()
    set_session_cookie(response, create_session_token(user))
    return UpdateProfileResponse(user=SessionUser.from_user(user))


@router.get("/{user_id}", response_model=UserProfileResponse)
async def get_user_profile(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
) -> UserProfileResponse:
    """Public profile with role badges and follower/following/post counts."""
    user = await _get_user_or_404(db, user_id)
    is_self = viewer is not None and viewer.id == user.id
    following = False
    if viewer is not None and not is_self:
        following = await social.has_follow(db, viewer.id, user.id)

    return UserProfileResponse(
        id=user.id,
        username=user.username,
        avatar=user.avatar,
        created_at=to_iso(user.created_at),
        is_verified=bool(user.is_verified),
        is_staff=bool(user.is_staff),
        is_admin=bool(user.is_admin or user.is_owner),
        is_owner=bool(user.is_owner),
        follower_count=await social.follower_count(db, user.id),
        following_count=await social.following_count(db, user.id),
        post_count=await users.post_count(db, user.id),
        following=following,
        is_self=is_self,
    )


@router.get("/{user_id}/posts", response_model=ListPostsResponse)
async def list_user_posts(
    user_id: int,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
) -> ListPostsResponse:
    """A user's posts; the owner also sees their drafts."""
    user = await _get_user_or_404(db, user_id)
    viewer_id = viewer.id if viewer else None
    entries = await feed.list_by_owner(
        db,
        user.id,
        include_drafts=viewer_id == user.id,
        limit=limit,
        offset=offset,
    )
    return ListPostsResponse(posts=await build_feed(db, viewer_id, entries, storage))


@router.get("/{user_id}/follow", response_model=FollowResponse)
@router.get("/{user_id}/subscribe", response_model=FollowResponse)
async def get_follow_state(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
) -> FollowResponse:
    user = await _get_user_or_404(db, user_id)
    following = False
    if viewer is not None and viewer.id != user.id:
        following = await social.has_follow(db, viewer.id, user.id)
    return FollowResponse(following=following, follower_count=await social.follower_count(db, user.id))


@router.post("/{user_id}/follow", response_model=FollowResponse)
@router.post("/{user_id}/subscribe", response_model=FollowResponse)
async def follow_user(
    user_id: int,
    data: FollowRequest | None = None,
    db: AsyncSession = Depends(get_db),
    viewer: User = Depends(get_current_user),
) -> FollowResponse:
    """Follow or unfollow a user; toggles when the body does not say."""
    user = await _get_user_or_404(db, user_id)
    if viewer.id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You can't follow yourself")

    if data is not None and data.follow is not None:
        follow = data.follow
    else:
        follow = not await social.has_follow(db, viewer.id, user.id)
    await social.set_follow(db, viewer.id, user.id, follow)
    return FollowResponse(following=follow, follower_count=await social.follower_count(db, user.id))
