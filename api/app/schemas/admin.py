"""Admin-related Pydantic schemas."""

from app.models.user import User
from app.schemas.base import CamelModel, to_iso


class AdminUserInfo(CamelModel):
    """User information for admin endpoints."""

    id: int
    username: str
    avatar: str | None
    discord_id: str | None
    google_id: str | None
    is_admin: bool
    is_banned: bool
    is_verified: bool
    is_staff: bool
    is_owner: bool
    created_at: str | None
    last_seen_at: str | None

    @classmethod
    def from_user(cls, user: User) -> "AdminUserInfo":
        return cls(
            id=user.id,
            username=user.username,
            avatar=user.avatar,
            discord_id=user.discord_id,
            google_id=user.google_id,
            is_admin=bool(user.is_admin),
            is_banned=bool(user.is_banned),
            is_verified=bool(user.is_verified),
            is_staff=bool(user.is_staff),
            is_owner=bool(user.is_owner),
            created_at=to_iso(user.created_at),
            last_seen_at=to_iso(user.last_seen_at),
        )


class ListUsersResponse(CamelModel):
    """Response for GET /api/admin/users."""

    users: list[AdminUserInfo]


class BanRequest(CamelModel):
    banned: bool = True


class VerifyRequest(CamelModel):
    verified: bool = True


class AdminFlagRequest(CamelModel):
    admin: bool = True


class StaffRequest(CamelModel):
    staff: bool = True


class UserFlagResponse(CamelModel):
    """Response after changing one of a user's role flags."""

    success: bool = True
    message: str
    user: AdminUserInfo


class PromoteAdminRequest(CamelModel):
    """Bootstrap request guarded by SETUP_SECRET."""

    secret: str
    user_id: int | None = None
    discord_id: str | None = None
    owner: bool = False


class PromoteAdminResponse(CamelModel):
    success: bool = True
    message: str
    user: AdminUserInfo
