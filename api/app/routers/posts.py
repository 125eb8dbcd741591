"""Feed endpoints: latest, trending, search and the viewer's personal lists."""

from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, get_optional_user
from app.database import get_db
from app.models.user import User
from app.schemas.base import OkResponse
from app.schemas.posts import (
    ListHistoryResponse,
    ListPostsResponse,
    ListWatchlistResponse,
    build_feed,
    history_item,
    watchlist_item,
)
from app.services import feed, social
from app.services.storage import Storage, get_storage

router = APIRouter(prefix="/api/posts", tags=["Feeds"])

PostFormat = Literal["long", "short", "photo"]


def _viewer_id(user: User | None) -> int | None:
    return user.id if user else None


@router.get("", response_model=ListPostsResponse)
async def list_posts(
    format: PostFormat | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
) -> ListPostsResponse:
    """Published posts, newest first."""
    entries = await feed.list_published(db, fmt=format, limit=limit, offset=offset)
    return ListPostsResponse(posts=await build_feed(db, _viewer_id(viewer), entries, storage))


@router.get("/trending", response_model=ListPostsResponse)
async def list_trending(
    limit: int = Query(default=feed.TRENDING_LIMIT, ge=1, le=feed.TRENDING_LIMIT),
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
) -> ListPostsResponse:
    """Published posts ranked by likes, ties broken by recency."""
    entries = await feed.list_trending(db, limit=limit)
    return ListPostsResponse(posts=await build_feed(db, _viewer_id(viewer), entries, storage))


@router.get("/search", response_model=ListPostsResponse)
async def search(
    q: str = Query(default="", max_length=200),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
    storage: Storage = Depends(get_storage),
) -> ListPostsResponse:
    entries = await feed.search_posts(db, q, limit=limit, offset=offset)
    return ListPostsResponse(posts=await build_feed(db, _viewer_id(viewer), entries, storage))


@router.get("/liked", response_model=ListPostsResponse)
async def list_liked(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> ListPostsResponse:
    entries = await feed.list_liked(db, user.id, limit=limit, offset=offset)
    return ListPostsResponse(posts=await build_feed(db, user.id, entries, storage))


@router.get("/history", response_model=ListHistoryResponse)
async def list_history(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> ListHistoryResponse:
    """Posts the user has watched, most recent view first."""
    entries = await feed.list_history(db, user.id, limit=limit, offset=offset)
    return ListHistoryResponse(posts=await build_feed(db, user.id, entries, storage, build=history_item))


@router.delete("/history", response_model=OkResponse, status_code=status.HTTP_200_OK)
async def clear_history(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> OkResponse:
    await social.clear_history(db, user.id)
    return OkResponse()


@router.get("/watchlater", response_model=ListWatchlistResponse)
async def list_watch_later(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> ListWatchlistResponse:
    entries = await feed.list_watchlist(db, user.id, limit=limit, offset=offset)
    return ListWatchlistResponse(
        posts=await build_feed(db, user.id, entries, storage, build=watchlist_item)
    )


@router.get("/following", response_model=ListPostsResponse)
async def list_following(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> ListPostsResponse:
    """Published posts from accounts the user follows."""
    entries = await feed.list_following(db, user.id, limit=limit, offset=offset)
    return ListPostsResponse(posts=await build_feed(db, user.id, entries, storage))
