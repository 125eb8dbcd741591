"""Admin router for user moderation, plus the one-time admin bootstrap."""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_admin
from app.config import settings
from app.database import get_db
from app.models.user import User
from app.schemas.admin import (
    AdminFlagRequest,
    AdminUserInfo,
    BanRequest,
    ListUsersResponse,
    PromoteAdminRequest,
    PromoteAdminResponse,
    StaffRequest,
    UserFlagResponse,
    VerifyRequest,
)
from app.services import users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])
setup_router = APIRouter(prefix="/api/setup", tags=["Admin"])


async def _get_target(db: AsyncSession, user_id: int) -> User:
    user = await users.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def _set_flag(
    db: AsyncSession,
    admin: User,
    user_id: int,
    flag: str,
    value: bool,
    message: str,
) -> UserFlagResponse:
    user = await _get_target(db, user_id)
    await users.set_flag(db, user, flag, value)
    logger.info("Admin %s set %s=%s on user %s", admin.id, flag, value, user.id)
    return UserFlagResponse(message=message, user=AdminUserInfo.from_user(user))


@router.get(
    "/users",
    response_model=ListUsersResponse,
    status_code=status.HTTP_200_OK,
)
async def list_users(
    q: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ListUsersResponse:
    """
    List users, newest first.

    ``q`` matches display names (substring) or exact Discord/Google ids.
    """
    found = await users.list_users(db, q=q, limit=limit, offset=offset)
    return ListUsersResponse(users=[AdminUserInfo.from_user(user) for user in found])


@router.post("/user/{user_id}/ban", response_model=UserFlagResponse)
async def ban_user(
    user_id: int,
    data: BanRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserFlagResponse:
    """Ban or unban a user. Takes effect on the user's next request."""
    target = await _get_target(db, user_id)
    if data.banned and target.is_owner:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="The owner cannot be banned")
    if data.banned and target.id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You can't ban yourself")
    message = f"User {'banned' if data.banned else 'unbanned'}"
    return await _set_flag(db, admin, user_id, "is_banned", data.banned, message)


@router.post("/user/{user_id}/verify", response_model=UserFlagResponse)
async def verify_user(
    user_id: int,
    data: VerifyRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserFlagResponse:
    message = f"User {'verified' if data.verified else 'unverified'}"
    return await _set_flag(db, admin, user_id, "is_verified", data.verified, message)


@router.post("/user/{user_id}/admin", response_model=UserFlagResponse)
async def set_admin(
    user_id: int,
    data: AdminFlagRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserFlagResponse:
    target = await _get_target(db, user_id)
    if not data.admin and target.is_owner:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="The owner cannot be demoted")
    message = f"User {'promoted to' if data.admin else 'removed from'} admin"
    return await _set_flag(db, admin, user_id, "is_admin", data.admin, message)


@router.post("/user/{user_id}/staff", response_model=UserFlagResponse)
async def set_staff(
    user_id: int,
    data: StaffRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> UserFlagResponse:
    message = f"User {'added to' if data.staff else 'removed from'} staff"
    return await _set_flag(db, admin, user_id, "is_staff", data.staff, message)


@setup_router.post("/promote-admin", response_model=PromoteAdminResponse)
async def promote_admin(
    data: PromoteAdminRequest,
    db: AsyncSession = Depends(get_db),
) -> PromoteAdminResponse:
    """
    Promote a user to admin (and optionally owner) using SETUP_SECRET.

    The target is named by ``userId`` or ``discordId``; an unknown Discord id
    is created so the first admin can be set up before they ever sign in.
    """
    if not settings.setup_secret:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Admin setup not available")
    if not secrets.compare_digest(data.secret.encode(), settings.setup_secret.encode()):
        logger.warning("Rejected admin setup attempt with a wrong secret")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid setup secret")

    if data.user_id is not None:
        user = await _get_target(db, data.user_id)
    elif data.discord_id:
        user = await users.get_user_by_discord_id(db, data.discord_id)
        if user is None:
            user = await users.upsert_discord_user(db, data.discord_id, None)
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Discord ID required")

    await users.set_flag(db, user, "is_admin", True)
    if data.owner:
        await users.set_flag(db, user, "is_owner", True)
    logger.info("User %s promoted to %s via setup secret", user.id, "owner" if data.owner else "admin")
    return PromoteAdminResponse(
        message=f"User {user.id} promoted to {'owner' if data.owner else 'admin'}",
        user=AdminUserInfo.from_user(user),
    )
