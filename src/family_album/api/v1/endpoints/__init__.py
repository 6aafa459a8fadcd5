"""API endpoint modules for version 1."""

from .photos import router as photos_router
from .posts import router as posts_router

__all__ = [
    "photos_router",
    "posts_router",
]
