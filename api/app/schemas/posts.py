"""Post and feed Pydantic schemas."""

from pydantic import field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.base import CamelModel, to_iso
from app.services.feed import FeedEntry, ViewerState, viewer_state
from app.services.storage import Storage
from app.services.uploads import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH


class PostItem(CamelModel):
    """A post as it appears in any feed."""

    id: int
    title: str
    description: str
    file_url: str | None
    thumbnail_url: str | None
    type: str
    format: str
    status: str
    likes: int
    created_at: str
    uploader_id: int
    uploader_name: str
    uploader_avatar: str | None
    uploader_verified: bool
    liked: bool = False
    watch_later: bool = False


class HistoryItem(PostItem):
    viewed_at: str


class WatchlistItem(PostItem):
    added_at: str


class ListPostsResponse(CamelModel):
    posts: list[PostItem]


class ListHistoryResponse(CamelModel):
    posts: list[HistoryItem]


class ListWatchlistResponse(CamelModel):
    posts: list[WatchlistItem]


class PostDetailResponse(PostItem):
    """Single post with the viewer's relationship to it."""

    can_edit: bool
    is_owner: bool
    following: bool
    comment_count: int


class UploadResponse(CamelModel):
    """Response for POST /api/upload."""

    id: int
    edit_token: str
    file_url: str | None
    thumbnail_url: str | None
    type: str
    format: str
    status: str


class EditPostRequest(CamelModel):
    """Request to set a post's metadata and publish it."""

    token: str | None = None
    title: str = ""
    description: str = ""
    format: str | None = None

    @field_validator("title")
    @classmethod
    def trim_title(cls, v: str) -> str:
        return v.strip()[:TITLE_MAX_LENGTH]

    @field_validator("description")
    @classmethod
    def trim_description(cls, v: str) -> str:
        return v.strip()[:DESCRIPTION_MAX_LENGTH]


class EditPostResponse(CamelModel):
    id: int
    status: str
    format: str
    title: str
    description: str
    # Set only when a token-based publish rotated the edit token
    edit_token: str | None = None


def entry_fields(entry: FeedEntry, storage: Storage, state: ViewerState | None) -> dict:
    post, owner = entry.post, entry.owner
    return {
        "id": post.id,
        "title": post.title or "",
        "description": post.description or "",
        "file_url": storage.url(post.file_url),
        "thumbnail_url": storage.url(post.thumbnail_url),
        "type": post.media_type,
        "format": post.format,
        "status": post.status,
        "likes": entry.likes,
        "created_at": to_iso(post.created_at),
        "uploader_id": owner.id,
        "uploader_name": owner.username or post.uploader_name,
        "uploader_avatar": owner.avatar,
        "uploader_verified": bool(owner.is_verified),
        "liked": state is not None and post.id in state.liked,
        "watch_later": state is not None and post.id in state.watch_later,
    }


def post_item(entry: FeedEntry, storage: Storage, state: ViewerState | None = None) -> PostItem:
    return PostItem(**entry_fields(entry, storage, state))


def history_item(entry: FeedEntry, storage: Storage, state: ViewerState | None = None) -> HistoryItem:
    return HistoryItem(**entry_fields(entry, storage, state), viewed_at=to_iso(entry.at))


def watchlist_item(entry: FeedEntry, storage: Storage, state: ViewerState | None = None) -> WatchlistItem:
    return WatchlistItem(**entry_fields(entry, storage, state), added_at=to_iso(entry.at))


async def build_feed(
    db: AsyncSession,
    viewer_id: int | None,
    entries: list[FeedEntry],
    storage: Storage,
    build=post_item,
) -> list:
    """Serialize a page of feed entries with the viewer's liked / watch-later flags."""
    state = await viewer_state(db, viewer_id, [entry.post.id for entry in entries])
    return [build(entry, storage, state) for entry in entries]
