"""Shared-secret authentication for the Discord bot's upload relay.

Tokens are compared through HMAC-SHA256 digests so the comparison runs in
constant time regardless of length.
"""

import hashlib
import hmac

from app.config import settings

SERVICE_TOKEN_HEADER = "X-Service-Token"


def _digest(value: str) -> str:
    return hmac.new(
        settings.jwt_secret.encode(),
        value.encode(),
        hashlib.sha256,
    ).hexdigest()


def verify_service_token(presented: str | None) -> bool:
    """Check a presented token against ``BOT_SERVICE_TOKEN``."""
    expected = settings.bot_service_token
    if not expected or not presented:
        return False
    return hmac.compare_digest(_digest(presented), _digest(expected))
