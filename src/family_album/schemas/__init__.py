"""Pydantic schemas for the Family Album API."""

from .photo import (
    AsyncUploadResponse,
    PhotoResponse,
    PhotoStatusResponse,
    UploadErrorResponse,
)
from .post import FeedItem, FeedResponse, PostDetailResponse, PostResponse, PostUpdate

__all__ = [
    "AsyncUploadResponse",
    "FeedItem",
    "FeedResponse",
    "PhotoResponse",
    "PhotoStatusResponse",
    "PostDetailResponse",
    "PostResponse",
    "PostUpdate",
    "UploadErrorResponse",
]
