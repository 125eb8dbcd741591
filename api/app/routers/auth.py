"""Authentication router for OAuth sign-in and the browser session."""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_optional_user
from app.auth.jwt import clear_session_cookie, create_session_token, set_session_cookie
from app.auth.oauth import OAuthError, OAuthProfile, get_provider
from app.config import settings
from app.database import get_db
from app.middleware.rate_limit import limiter
from app.models.user import User
from app.schemas.auth import MeResponse, SessionUser
from app.schemas.base import OkResponse
from app.services import users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_MAX_AGE = 10 * 60


@router.get("/login")
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request,
    provider: str = Query(default="discord"),
) -> RedirectResponse:
    """
    Start the OAuth authorization-code flow.

    A random ``state`` is stored in a short-lived cookie and checked on callback.
    """
    client = get_provider(provider)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown provider '{provider}'",
        )
    if not client.configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{client.label} OAuth is not configured",
        )

    state = secrets.token_urlsafe(24)
    response = RedirectResponse(client.authorization_url(state), status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=f"{client.name}:{state}",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=OAUTH_STATE_MAX_AGE,
        path="/",
    )
    return response


async def _complete_sign_in(
    request: Request,
    db: AsyncSession,
    provider_name: str,
    code: str | None,
    state: str | None,
    error: str | None,
) -> RedirectResponse:
    if error or not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing code")

    expected = request.cookies.get(OAUTH_STATE_COOKIE)
    presented = f"{provider_name}:{state}"
    if not state or not expected or not secrets.compare_digest(expected.encode(), presented.encode()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OAuth state")

    client = get_provider(provider_name)
    if client is None or not client.configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{provider_name.title()} OAuth is not configured",
        )

    try:
        profile: OAuthProfile = await client.fetch_profile(code)
    except OAuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    if profile.provider == "google":
        user = await users.upsert_google_user(db, profile.provider_id, profile.username, profile.avatar)
    else:
        user = await users.upsert_discord_user(db, profile.provider_id, profile.username, profile.avatar)

    if user.is_banned:
        logger.info("Banned user %s attempted to sign in via %s", user.id, provider_name)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been banned and cannot access this platform.",
        )

    logger.info("User %s signed in via %s", user.id, provider_name)
    response = RedirectResponse(f"{settings.frontend_base}/", status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, create_session_token(user))
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/")
    return response


@router.get("/callback")
@limiter.limit(settings.login_rate_limit)
async def discord_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    """Discord OAuth redirect target."""
    return await _complete_sign_in(request, db, "discord", code, state, error)


@router.get("/google/callback")
@limiter.limit(settings.login_rate_limit)
async def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    """Google OAuth redirect target."""
    return await _complete_sign_in(request, db, "google", code, state, error)


@router.get("/me", response_model=MeResponse)
async def me(
    response: Response,
    user: User | None = Depends(get_optional_user),
) -> MeResponse:
    """Return the signed-in user, or 401 with ``user: null``."""
    if user is None:
        response.status_code = status.HTTP_401_UNAUTHORIZED
        return MeResponse(user=None)
    return MeResponse(user=SessionUser.from_user(user))


@router.post("/logout", response_model=OkResponse)
async def logout(response: Response) -> OkResponse:
    clear_session_cookie(response)
    return OkResponse()
