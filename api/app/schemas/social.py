"""Likes, watch-later, comments and follows."""

from pydantic import field_validator

from app.models.social import Comment
from app.models.user import User
from app.schemas.base import CamelModel, to_iso
from app.services.social import COMMENT_MAX_LENGTH


class LikeRequest(CamelModel):
    """Explicit like state; omit to toggle."""

    like: bool | None = None


class LikeResponse(CamelModel):
    likes: int
    liked: bool


class WatchLaterRequest(CamelModel):
    watch_later: bool | None = None


class WatchLaterResponse(CamelModel):
    watch_later: bool


class FollowRequest(CamelModel):
    follow: bool | None = None


class FollowResponse(CamelModel):
    following: bool
    follower_count: int


class CommentRequest(CamelModel):
    text: str = ""

    @field_validator("text")
    @classmethod
    def trim_text(cls, v: str) -> str:
        return v.strip()[:COMMENT_MAX_LENGTH]


class CommentItem(CamelModel):
    id: int
    post_id: int
    user_id: int
    username: str
    avatar: str | None
    verified: bool
    text: str
    created_at: str

    @classmethod
    def build(cls, comment: Comment, author: User) -> "CommentItem":
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            user_id=author.id,
            username=author.username,
            avatar=author.avatar,
            verified=bool(author.is_verified),
            text=comment.text,
            created_at=to_iso(comment.created_at),
        )


class CommentResponse(CamelModel):
    comment: CommentItem


class ListCommentsResponse(CamelModel):
    comments: list[CommentItem]
