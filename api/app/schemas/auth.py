"""Session-related Pydantic schemas."""

from app.models.user import User
from app.schemas.base import CamelModel


class SessionUser(CamelModel):
    """The signed-in user as the frontend sees it."""

    id: int
    username: str
    avatar: str | None
    is_admin: bool
    is_owner: bool
    is_staff: bool
    is_verified: bool
    discord_id: str | None
    google_id: str | None

    @classmethod
    def from_user(cls, user: User) -> "SessionUser":
        return cls(
            id=user.id,
            username=user.username,
            avatar=user.avatar,
            is_admin=bool(user.is_admin or user.is_owner),
            is_owner=bool(user.is_owner),
            is_staff=bool(user.is_staff),
            is_verified=bool(user.is_verified),
            discord_id=user.discord_id,
            google_id=user.google_id,
        )


class MeResponse(CamelModel):
    """Response for GET /api/auth/me."""

    user: SessionUser | None
