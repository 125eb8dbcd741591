"""User-related Pydantic schemas."""

from app.schemas.auth import SessionUser
from app.schemas.base import CamelModel


class UserProfileResponse(CamelModel):
    """Public user profile with role badges and social counts."""

    id: int
    username: str
    avatar: str | None
    created_at: str | None
    is_verified: bool
    is_staff: bool
    is_admin: bool
    is_owner: bool
    follower_count: int
    following_count: int
    post_count: int
    # Viewer-relative
    following: bool
    is_self: bool


class UpdateProfileResponse(CamelModel):
    """Response after updating the caller's display name or avatar."""

    user: SessionUser
