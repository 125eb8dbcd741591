"""User lookup, upsert and role-flag management."""

from datetime import datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import dialect_insert
from app.models.post import Post
from app.models.user import ROLE_FLAGS, User

USERNAME_MAX_LENGTH = 80


def clean_username(value: str | None) -> str:
    """Trim a display name, falling back to ``Unknown``."""
    return (value or "").strip()[:USERNAME_MAX_LENGTH] or "Unknown"


async def _upsert(db: AsyncSession, key: str, provider_id: str, username: str, avatar: str | None) -> User:
    now = datetime.now(timezone.utc)
    table = User.__table__
    stmt = dialect_insert(db, table).values(
        {
            key: provider_id,
            "username": clean_username(username),
            "avatar": avatar,
            "created_at": now,
            "last_seen_at": now,
        }
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[key],
        set_={
            "username": stmt.excluded.username,
            # Keep the known avatar when the caller has none (bot uploads)
            "avatar": func.coalesce(stmt.excluded.avatar, table.c.avatar),
            "last_seen_at": stmt.excluded.last_seen_at,
        },
    ).returning(table.c.id)

    user_id = (await db.execute(stmt)).scalar_one()
    return await db.get(User, user_id, populate_existing=True)


async def upsert_discord_user(
    db: AsyncSession, discord_id: str, username: str | None, avatar: str | None = None
) -> User:
    """Insert a Discord identity or refresh its name, avatar and last-seen time."""
    return await _upsert(db, "discord_id", str(discord_id), username, avatar)


async def upsert_google_user(
    db: AsyncSession, google_id: str, username: str | None, avatar: str | None = None
) -> User:
    """Insert a Google identity or refresh its name, avatar and last-seen time."""
    return await _upsert(db, "google_id", str(google_id), username, avatar)


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_discord_id(db: AsyncSession, discord_id: str) -> User | None:
    result = await db.execute(select(User).where(User.discord_id == str(discord_id)))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession, q: str | None = None, limit: int = 100, offset: int = 0) -> list[User]:
    """List users newest first, optionally filtered by name or provider id."""
    query = select(User)
    if q:
        pattern = f"%{escape_like(q)}%"
        query = query.where(
            or_(
                User.username.ilike(pattern, escape="\\"),
                User.discord_id == q,
                User.google_id == q,
            )
        )
    query = query.order_by(User.created_at.desc(), User.id.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


async def set_flag(db: AsyncSession, user: User, flag: str, value: bool) -> User:
    """Set one of the role flags (admin, banned, verified, staff, owner)."""
    if flag not in ROLE_FLAGS:
        raise ValueError(f"Unknown role flag: {flag}")
    setattr(user, flag, bool(value))
    await db.flush()
    return user


async def post_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(Post.id)).where(Post.owner_id == user_id, Post.status == "published")
    )
    return result.scalar_one()


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
