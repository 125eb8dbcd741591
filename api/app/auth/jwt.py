"""Signed session tokens carried in the session cookie."""

from datetime import datetime, timedelta, timezone

from fastapi import Response
from jose import jwt

from app.config import settings
from app.models.user import User

ALGORITHM = "HS256"


def session_claims(user: User) -> dict:
    """Denormalized user fields embedded in the session token."""
    return {
        "sub": str(user.id),
        "username": user.username,
        "avatar": user.avatar,
        "isAdmin": bool(user.is_admin or user.is_owner),
    }


def create_session_token(user: User) -> str:
    """Create a session token valid for ``session_expire_days``."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.session_expire_days)
    payload = {
        **session_claims(user),
        "exp": expire,
        "type": "session",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str) -> dict | None:
    """
    Decode and validate a session token.

    Returns the payload if valid, None if invalid or expired.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except jwt.JWTError:
        return None
    if payload.get("type") != "session":
        return None
    return payload


def claims_are_stale(payload: dict, user: User) -> bool:
    """True when the token no longer reflects the stored user."""
    current = session_claims(user)
    return any(payload.get(key) != value for key, value in current.items())


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.session_expire_days * 24 * 60 * 60,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie_headers() -> dict[str, str]:
    """Set-Cookie header that clears the session, for attaching to error responses."""
    scratch = Response()
    clear_session_cookie(scratch)
    return {"set-cookie": scratch.headers["set-cookie"]}
