"""Database models for the BeardedVibes API."""

from app.models.post import Post
from app.models.social import Comment, Follow, HistoryView, Like, WatchlistEntry
from app.models.user import User

__all__ = [
    "User",
    "Post",
    "Like",
    "Comment",
    "HistoryView",
    "WatchlistEntry",
    "Follow",
]
