"""Authentication dependencies for FastAPI endpoints."""

from datetime import datetime, timezone

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import (
    claims_are_stale,
    clear_session_cookie,
    clear_session_cookie_headers,
    create_session_token,
    decode_token,
    set_session_cookie,
)
from app.config import settings
from app.database import get_db
from app.models.user import User

# Minimum interval between last_seen_at updates to reduce write amplification
LAST_SEEN_UPDATE_INTERVAL_SECONDS = 300  # 5 minutes


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive timestamps
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def get_optional_user(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """
    Resolve the session cookie to a user, or None for anonymous requests.

    The signature alone is not trusted: the user is reloaded on every request so
    bans and deletions take effect immediately. Stale denormalized claims cause
    the cookie to be re-signed.
    """
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None

    payload = decode_token(token)
    try:
        user_id = int(payload["sub"]) if payload else None
    except (KeyError, TypeError, ValueError):
        user_id = None

    user = await db.get(User, user_id) if user_id is not None else None
    if user is None:
        clear_session_cookie(response)
        return None

    if user.is_banned:
        request.state.session_banned = True
        clear_session_cookie(response)
        return None

    if claims_are_stale(payload, user):
        set_session_cookie(response, create_session_token(user))

    now = datetime.now(timezone.utc)
    if user.last_seen_at is None or (
        now - _as_utc(user.last_seen_at)
    ).total_seconds() > LAST_SEEN_UPDATE_INTERVAL_SECONDS:
        user.last_seen_at = now
        await db.flush()

    request.state.user_id = user.id
    return user


async def get_current_user(
    request: Request,
    user: User | None = Depends(get_optional_user),
) -> User:
    """
    Require a logged-in, non-banned user.

    Raises:
        HTTPException: 403 for a banned account, 401 otherwise
    """
    if user is not None:
        return user

    if getattr(request.state, "session_banned", False):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been banned",
            headers=clear_session_cookie_headers(),
        )

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Login required",
    )


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to be an admin (owners are always admins).

    Raises:
        HTTPException: 403 if user doesn't have admin rights
    """
    if not (user.is_admin or user.is_owner):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
