"""
Feed assembly over posts, likes and the social graph.

Every feed selects published posts together with their like count (a grouped
subquery LEFT JOINed onto posts) and the owner's profile. Per-viewer flags are
resolved separately for the page of ids actually returned.
"""

from datetime import datetime
from typing import NamedTuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.post import Post
from app.models.social import Follow, HistoryView, Like, WatchlistEntry
from app.models.user import User
from app.services.users import escape_like

TRENDING_LIMIT = 100

like_counts = (
    select(Like.post_id.label("post_id"), func.count(Like.id).label("like_count"))
    .group_by(Like.post_id)
    .subquery("like_counts")
)
like_total = func.coalesce(like_counts.c.like_count, 0)
is_published = Post.status == "published"


class FeedEntry(NamedTuple):
    """A post as it appears in a feed."""

    post: Post
    owner: User
    likes: int
    # viewed_at for history, added_at for the watchlist
    at: datetime | None = None


class ViewerState(NamedTuple):
    liked: set[int]
    watch_later: set[int]


def _feed_query(*extra_columns):
    return (
        select(Post, User, like_total.label("likes"), *extra_columns)
        .outerjoin(like_counts, like_counts.c.post_id == Post.id)
        .join(User, User.id == Post.owner_id)
    )


def _newest_first(query):
    return query.order_by(Post.created_at.desc(), Post.id.desc())


async def _fetch(db: AsyncSession, query) -> list[FeedEntry]:
    result = await db.execute(query)
    entries = []
    for row in result.all():
        at = row[3] if len(row) > 3 else None
        entries.append(FeedEntry(row[0], row[1], int(row[2] or 0), at))
    return entries


async def get_post(db: AsyncSession, post_id: int) -> FeedEntry | None:
    """Load a post of any status with its like count and owner."""
    entries = await _fetch(db, _feed_query().where(Post.id == post_id))
    return entries[0] if entries else None


async def list_published(
    db: AsyncSession,
    fmt: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[FeedEntry]:
    """Published posts, newest first, optionally restricted to one format."""
    query = _feed_query().where(is_published)
    if fmt:
        query = query.where(Post.format == fmt)
    return await _fetch(db, _newest_first(query).limit(limit).offset(offset))


async def list_trending(db: AsyncSession, limit: int = TRENDING_LIMIT) -> list[FeedEntry]:
    """Most liked published posts; ties go to the newer post."""
    query = (
        _feed_query()
        .where(is_published)
        .order_by(like_total.desc(), Post.created_at.desc(), Post.id.desc())
        .limit(min(limit, TRENDING_LIMIT))
    )
    return await _fetch(db, query)


async def search_posts(db: AsyncSession, q: str, limit: int = 50, offset: int = 0) -> list[FeedEntry]:
    """Case-insensitive substring search over title, description and uploader."""
    term = q.strip()
    if not term:
        return []
    pattern = f"%{escape_like(term)}%"
    query = _feed_query().where(
        is_published,
        or_(
            Post.title.ilike(pattern, escape="\\"),
            Post.description.ilike(pattern, escape="\\"),
            Post.uploader_name.ilike(pattern, escape="\\"),
            User.username.ilike(pattern, escape="\\"),
        ),
    )
    return await _fetch(db, _newest_first(query).limit(limit).offset(offset))


async def list_liked(db: AsyncSession, user_id: int, limit: int = 50, offset: int = 0) -> list[FeedEntry]:
    query = (
        _feed_query(Like.created_at)
        .join(Like, and_(Like.post_id == Post.id, Like.user_id == user_id))
        .where(is_published)
        .order_by(Like.created_at.desc(), Like.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return await _fetch(db, query)


async def list_history(db: AsyncSession, user_id: int, limit: int = 50, offset: int = 0) -> list[FeedEntry]:
    query = (
        _feed_query(HistoryView.viewed_at)
        .join(HistoryView, and_(HistoryView.post_id == Post.id, HistoryView.user_id == user_id))
        .where(is_published)
        .order_by(HistoryView.viewed_at.desc(), HistoryView.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return await _fetch(db, query)


async def list_watchlist(db: AsyncSession, user_id: int, limit: int = 50, offset: int = 0) -> list[FeedEntry]:
    query = (
        _feed_query(WatchlistEntry.added_at)
        .join(WatchlistEntry, and_(WatchlistEntry.post_id == Post.id, WatchlistEntry.user_id == user_id))
        .where(is_published)
        .order_by(WatchlistEntry.added_at.desc(), WatchlistEntry.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return await _fetch(db, query)


async def list_following(db: AsyncSession, user_id: int, limit: int = 50, offset: int = 0) -> list[FeedEntry]:
    """Published posts from accounts the user follows."""
    query = (
        _feed_query()
        .join(Follow, and_(Follow.followee_id == Post.owner_id, Follow.follower_id == user_id))
        .where(is_published)
    )
    return await _fetch(db, _newest_first(query).limit(limit).offset(offset))


async def list_by_owner(
    db: AsyncSession,
    owner_id: int,
    include_drafts: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[FeedEntry]:
    query = _feed_query().where(Post.owner_id == owner_id)
    if not include_drafts:
        query = query.where(is_published)
    return await _fetch(db, _newest_first(query).limit(limit).offset(offset))


async def viewer_state(db: AsyncSession, viewer_id: int | None, post_ids: list[int]) -> ViewerState:
    """Which of ``post_ids`` the viewer has liked or saved for later."""
    if viewer_id is None or not post_ids:
        return ViewerState(set(), set())

    liked = await db.execute(
        select(Like.post_id).where(Like.user_id == viewer_id, Like.post_id.in_(post_ids))
    )
    saved = await db.execute(
        select(WatchlistEntry.post_id).where(
            WatchlistEntry.user_id == viewer_id,
            WatchlistEntry.post_id.in_(post_ids),
        )
    )
    return ViewerState(set(liked.scalars().all()), set(saved.scalars().all()))
