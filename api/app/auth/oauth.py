"""OAuth2 authorization-code flows for Discord and Google sign-in."""

import logging
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from app.config import settings

logger = logging.getLogger(__name__)


class OAuthError(Exception):
    """Raised when a provider rejects the code exchange or profile lookup."""


class OAuthProfile(BaseModel):
    """Identity returned by a provider after a successful sign-in."""

    provider: str
    provider_id: str
    username: str
    avatar: str | None = None


class OAuthProvider:
    """Base authorization-code client; subclasses describe one provider."""

    name: str = ""
    label: str = ""
    authorize_endpoint: str = ""
    token_endpoint: str = ""
    profile_endpoint: str = ""
    scope: str = ""

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        }
        return f"{self.authorize_endpoint}?{urlencode(params)}"

    def parse_profile(self, data: dict) -> OAuthProfile:
        raise NotImplementedError

    async def fetch_profile(self, code: str) -> OAuthProfile:
        """Exchange the authorization code and load the user's profile."""
        try:
            return await self._exchange(code)
        except (httpx.HTTPError, ValueError, KeyError, AttributeError) as exc:
            # Transport failures and malformed provider responses
            logger.warning("%s sign-in failed: %r", self.label, exc)
            raise OAuthError(f"Failed to sign in with {self.label}") from exc

    async def _exchange(self, code: str) -> OAuthProfile:
        async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
            token_response = await client.post(
                self.token_endpoint,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                },
                headers={"Accept": "application/json"},
            )
            if token_response.status_code != 200:
                logger.warning("%s token exchange failed: %s", self.label, token_response.text)
                raise OAuthError(f"Failed to sign in with {self.label}")

            access_token = token_response.json().get("access_token")
            if not access_token:
                raise OAuthError(f"Failed to sign in with {self.label}")

            profile_response = await client.get(
                self.profile_endpoint,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            if profile_response.status_code != 200:
                logger.warning("%s profile fetch failed: %s", self.label, profile_response.text)
                raise OAuthError(f"Failed to fetch {self.label} profile")

            return self.parse_profile(profile_response.json())


class DiscordProvider(OAuthProvider):
    name = "discord"
    label = "Discord"
    authorize_endpoint = "https://discord.com/oauth2/authorize"
    token_endpoint = "https://discord.com/api/oauth2/token"
    profile_endpoint = "https://discord.com/api/users/@me"
    scope = "identify"

    def parse_profile(self, data: dict) -> OAuthProfile:
        discord_id = str(data["id"])
        avatar_hash = data.get("avatar")
        avatar = (
            f"https://cdn.discordapp.com/avatars/{discord_id}/{avatar_hash}.png" if avatar_hash else None
        )
        return OAuthProfile(
            provider=self.name,
            provider_id=discord_id,
            username=data.get("global_name") or data.get("username") or "Unknown",
            avatar=avatar,
        )


class GoogleProvider(OAuthProvider):
    name = "google"
    label = "Google"
    authorize_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    profile_endpoint = "https://openidconnect.googleapis.com/v1/userinfo"
    scope = "openid profile"

    def parse_profile(self, data: dict) -> OAuthProfile:
        return OAuthProfile(
            provider=self.name,
            provider_id=str(data["sub"]),
            username=data.get("name") or data.get("given_name") or "Unknown",
            avatar=data.get("picture"),
        )


def get_provider(name: str) -> OAuthProvider | None:
    """Build the provider client for ``name`` from settings."""
    if name == "discord":
        return DiscordProvider(
            settings.discord_client_id,
            settings.discord_client_secret,
            settings.discord_callback_url,
        )
    if name == "google":
        return GoogleProvider(
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_callback_url,
        )
    return None
