"""Version 1 API endpoints."""

from .endpoints import photos_router, posts_router

__all__ = [
    "photos_router",
    "posts_router",
]
