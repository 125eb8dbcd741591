"""Likes, watch-later, history, follows and comments.

Likes, watchlist entries and follows are sets: adding an existing member or
removing a missing one is a no-op.
"""

from datetime import datetime, timezone

from sqlalchemy import delete, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import dialect_insert
from app.models.social import Comment, Follow, HistoryView, Like, WatchlistEntry
from app.models.user import User

COMMENT_MAX_LENGTH = 800


async def _member(db: AsyncSession, model, **keys) -> bool:
    conditions = [getattr(model, name) == value for name, value in keys.items()]
    result = await db.execute(select(exists().where(*conditions)))
    return bool(result.scalar())


async def _add_member(db: AsyncSession, model, timestamp_column: str, **keys) -> None:
    values = {**keys, timestamp_column: datetime.now(timezone.utc)}
    stmt = dialect_insert(db, model.__table__).values(values).on_conflict_do_nothing()
    await db.execute(stmt)


async def _remove_member(db: AsyncSession, model, **keys) -> None:
    conditions = [getattr(model, name) == value for name, value in keys.items()]
    await db.execute(delete(model).where(*conditions))


# --- Likes ---


async def has_liked(db: AsyncSession, post_id: int, user_id: int) -> bool:
    return await _member(db, Like, post_id=post_id, user_id=user_id)


async def like_count(db: AsyncSession, post_id: int) -> int:
    result = await db.execute(select(func.count(Like.id)).where(Like.post_id == post_id))
    return result.scalar_one()


async def set_like(db: AsyncSession, post_id: int, user_id: int, like: bool) -> int:
    """Add or remove the user's like and return the post's fresh like count."""
    if like:
        await _add_member(db, Like, "created_at", post_id=post_id, user_id=user_id)
    else:
        await _remove_member(db, Like, post_id=post_id, user_id=user_id)
    return await like_count(db, post_id)


# --- Watch later ---


async def has_watch_later(db: AsyncSession, post_id: int, user_id: int) -> bool:
    return await _member(db, WatchlistEntry, post_id=post_id, user_id=user_id)


async def set_watch_later(db: AsyncSession, post_id: int, user_id: int, add: bool) -> bool:
    if add:
        await _add_member(db, WatchlistEntry, "added_at", post_id=post_id, user_id=user_id)
    else:
        await _remove_member(db, WatchlistEntry, post_id=post_id, user_id=user_id)
    return add


# --- History ---


async def record_view(db: AsyncSession, post_id: int, user_id: int) -> None:
    """Insert a history row or move an existing one to the top."""
    stmt = dialect_insert(db, HistoryView.__table__).values(
        post_id=post_id,
        user_id=user_id,
        viewed_at=datetime.now(timezone.utc),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["post_id", "user_id"],
        set_={"viewed_at": stmt.excluded.viewed_at},
    )
    await db.execute(stmt)


async def clear_history(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(delete(HistoryView).where(HistoryView.user_id == user_id))
    return result.rowcount or 0


# --- Follows ---


async def has_follow(db: AsyncSession, follower_id: int, followee_id: int) -> bool:
    return await _member(db, Follow, follower_id=follower_id, followee_id=followee_id)


async def set_follow(db: AsyncSession, follower_id: int, followee_id: int, follow: bool) -> bool:
    if follower_id == followee_id:
        raise ValueError("Users cannot follow themselves")
    if follow:
        await _add_member(db, Follow, "created_at", follower_id=follower_id, followee_id=followee_id)
    else:
        await _remove_member(db, Follow, follower_id=follower_id, followee_id=followee_id)
    return follow


async def follower_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(func.count(Follow.id)).where(Follow.followee_id == user_id))
    return result.scalar_one()


async def following_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(func.count(Follow.id)).where(Follow.follower_id == user_id))
    return result.scalar_one()


# --- Comments ---


async def add_comment(db: AsyncSession, post_id: int, user_id: int, text: str) -> Comment:
    comment = Comment(
        post_id=post_id,
        user_id=user_id,
        text=text,
        created_at=datetime.now(timezone.utc),
    )
    db.add(comment)
    await db.flush()
    return comment


async def list_comments(db: AsyncSession, post_id: int) -> list[tuple[Comment, User]]:
    """Comments on a post, newest first, with their authors."""
    result = await db.execute(
        select(Comment, User)
        .join(User, User.id == Comment.user_id)
        .where(Comment.post_id == post_id)
        .order_by(Comment.id.desc())
    )
    return [(comment, author) for comment, author in result.all()]


async def comment_count(db: AsyncSession, post_id: int) -> int:
    result = await db.execute(select(func.count(Comment.id)).where(Comment.post_id == post_id))
    return result.scalar_one()


async def get_comment(db: AsyncSession, post_id: int, comment_id: int) -> Comment | None:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id, Comment.post_id == post_id)
    )
    return result.scalar_one_or_none()


async def delete_comment(db: AsyncSession, comment: Comment) -> None:
    await db.delete(comment)
    await db.flush()
