"""Pydantic schemas for request/response validation."""

from app.schemas.auth import MeResponse, SessionUser
from app.schemas.base import CamelModel, OkResponse, to_iso
from app.schemas.posts import (
    EditPostRequest,
    ListPostsResponse,
    PostDetailResponse,
    PostItem,
    UploadResponse,
)

__all__ = [
    "CamelModel",
    "OkResponse",
    "to_iso",
    "SessionUser",
    "MeResponse",
    "PostItem",
    "ListPostsResponse",
    "PostDetailResponse",
    "UploadResponse",
    "EditPostRequest",
]
