"""Rate limiting middleware using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Keyed by client IP. headers_enabled would require a Response parameter on
# every limited endpoint, so limit headers are not emitted.
limiter = Limiter(key_func=get_remote_address)


def reset_limiter() -> None:
    """Reset the limiter storage. Used in tests to clear rate limit state."""
    if hasattr(limiter, "_limiter") and limiter._limiter:
        limiter._limiter.reset()
    if hasattr(limiter, "_storage") and limiter._storage:
        limiter._storage.reset()
