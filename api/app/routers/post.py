"""Single-post endpoints: detail, interactions, comments, editing and deletion."""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, get_optional_user
from app.config import settings
from app.database import get_db
from app.middleware.rate_limit import limiter
from app.models.post import Post
from app.models.user import User
from app.schemas.base import OkResponse, SuccessResponse
from app.schemas.posts import EditPostRequest, EditPostResponse, PostDetailResponse, entry_fields
from app.schemas.social import (
    CommentItem,
    CommentRequest,
    CommentResponse,
    LikeRequest,
    LikeResponse,
    ListCommentsResponse,
    WatchLaterRequest,
    WatchLaterResponse,
)
from app.services import feed, social
from app.services.feed import FeedEntry
from app.services.storage import Storage, get_storage
from app.services.uploads import generate_edit_token, resolve_format

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/post", tags=["Post"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")


def _token_matches(token: str | None, post: Post) -> bool:
    return bool(token) and secrets.compare_digest(token.encode(), post.edit_token.encode())


def _is_admin(user: User | None) -> bool:
    return user is not None and bool(user.is_admin or user.is_owner)


async def _published_entry(db: AsyncSession, post_id: int) -> FeedEntry:
    """Load a post for interaction; drafts are indistinguishable from missing posts."""
    entry = await feed.get_post(db, post_id)
    if entry is None or not entry.post.is_published:
        raise _not_found()
    return entry


@router.get("/{post_id}", response_model=PostDetailResponse)
async def get_post(
    post_id: int,
    token: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
) -> PostDetailResponse:
    """
    Get a single post.

    Drafts are returned only to their owner or to a caller presenting the
    post's edit token.
    """
    entry = await feed.get_post(db, post_id)
    if entry is None:
        raise _not_found()

    post = entry.post
    is_owner = viewer is not None and viewer.id == post.owner_id
    token_ok = _token_matches(token, post)
    if not post.is_published and not (is_owner or token_ok):
        raise _not_found()

    viewer_id = viewer.id if viewer else None
    state = await feed.viewer_state(db, viewer_id, [post.id])
    following = False
    if viewer is not None and not is_owner:
        following = await social.has_follow(db, viewer.id, post.owner_id)

    return PostDetailResponse(
        **entry_fields(entry, storage, state),
        can_edit=is_owner or token_ok,
        is_owner=is_owner,
        following=following,
        comment_count=await social.comment_count(db, post.id),
    )


@router.post("/{post_id}/view", response_model=OkResponse)
async def record_view(
    post_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> OkResponse:
    """Record the post in the user's watch history."""
    await _published_entry(db, post_id)
    await social.record_view(db, post_id, user.id)
    return OkResponse()


@router.post("/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: int,
    data: LikeRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> LikeResponse:
    """Set the like state, or toggle it when the body does not say."""
    await _published_entry(db, post_id)
    if data is not None and data.like is not None:
        liked = data.like
    else:
        liked = not await social.has_liked(db, post_id, user.id)
    likes = await social.set_like(db, post_id, user.id, liked)
    return LikeResponse(likes=likes, liked=liked)


@router.post("/{post_id}/watchlater", response_model=WatchLaterResponse)
async def watch_later(
    post_id: int,
    data: WatchLaterRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> WatchLaterResponse:
    await _published_entry(db, post_id)
    if data is not None and data.watch_later is not None:
        add = data.watch_later
    else:
        add = not await social.has_watch_later(db, post_id, user.id)
    await social.set_watch_later(db, post_id, user.id, add)
    return WatchLaterResponse(watch_later=add)


# --- Comments ---


@router.get("/{post_id}/comments", response_model=ListCommentsResponse)
async def list_comments(
    post_id: int,
    db: AsyncSession = Depends(get_db),
) -> ListCommentsResponse:
    await _published_entry(db, post_id)
    rows = await social.list_comments(db, post_id)
    return ListCommentsResponse(comments=[CommentItem.build(comment, author) for comment, author in rows])


@router.post(
    "/{post_id}/comment",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.comment_rate_limit)
async def add_comment(
    request: Request,
    post_id: int,
    data: CommentRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> CommentResponse:
    if not data.text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Comment text is required")
    await _published_entry(db, post_id)
    comment = await social.add_comment(db, post_id, user.id, data.text)
    return CommentResponse(comment=CommentItem.build(comment, user))


@router.delete("/{post_id}/comment/{comment_id}", response_model=OkResponse)
async def delete_comment(
    post_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> OkResponse:
    """Delete a comment. Allowed for its author and for admins."""
    comment = await social.get_comment(db, post_id, comment_id)
    if comment is None:
        raise _not_found()
    if comment.user_id != user.id and not _is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete your own comments",
        )
    await social.delete_comment(db, comment)
    return OkResponse()


# --- Editing ---


@router.post("/{post_id}/edit", response_model=EditPostResponse)
async def edit_post(
    post_id: int,
    data: EditPostRequest,
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
) -> EditPostResponse:
    """
    Set title, description and format, and publish the post.

    Allowed for the owner or a holder of the edit token. A publish through the
    token replaces the token, so the link sent to the uploader works once.
    """
    post = await db.get(Post, post_id)
    if post is None:
        raise _not_found()

    is_owner = viewer is not None and viewer.id == post.owner_id
    token_ok = _token_matches(data.token, post)
    if not (is_owner or token_ok):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")

    post.title = data.title
    post.description = data.description
    if data.format is not None:
        post.format = resolve_format(post.media_type, data.format)
    post.status = "published"

    rotated = None
    if token_ok and not is_owner:
        rotated = generate_edit_token()
        post.edit_token = rotated

    await db.flush()
    logger.info("Post %s published by %s", post.id, "owner" if is_owner else "token")

    return EditPostResponse(
        id=post.id,
        status=post.status,
        format=post.format,
        title=post.title,
        description=post.description,
        edit_token=rotated,
    )


@router.delete("/{post_id}", response_model=SuccessResponse)
async def delete_post(
    post_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> SuccessResponse:
    """Delete a post and its stored media. Allowed for admins and the owner."""
    post = await db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    if post.owner_id != user.id and not _is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner or an admin can delete this post",
        )

    file_ref, thumb_ref, media_type = post.file_url, post.thumbnail_url, post.media_type
    await db.delete(post)
    # The row must be gone before its media is
    await db.commit()

    for reference, kind in ((file_ref, media_type), (thumb_ref, "image")):
        try:
            await storage.delete(reference, kind)
        except Exception:
            logger.exception("Failed to delete stored media %s of post %s", reference, post_id)
    logger.info("Post %s deleted by user %s", post_id, user.id)
    return SuccessResponse(message="Post deleted")
