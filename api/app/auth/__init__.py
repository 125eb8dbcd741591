"""Authentication utilities for the BeardedVibes API."""

from app.auth.jwt import (
    clear_session_cookie,
    create_session_token,
    decode_token,
    set_session_cookie,
)
from app.auth.service_token import SERVICE_TOKEN_HEADER, verify_service_token

__all__ = [
    "create_session_token",
    "decode_token",
    "set_session_cookie",
    "clear_session_cookie",
    "SERVICE_TOKEN_HEADER",
    "verify_service_token",
]
