# src/family_album/models/__init__.py
"""SQLAlchemy models for the Family Album application."""

from .photo import Photo
from .post import Post, PostState
from .user import User

__all__ = [
    "Photo",
    "Post", "PostState",
    "User",
]
