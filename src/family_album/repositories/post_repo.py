"""Data access helpers for working with posts."""
from __future__ import annotations

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from family_album.models.photo import Photo
from family_album.models.post import Post

__all__ = ["PostRepository", "sort_key"]


def sort_key():
    """Return the SQL expression the album is ordered by."""
    return func.coalesce(Post.display_date, Post.created_at)


class PostRepository:
    """Thin wrapper around database access for post entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, post_id: int) -> Post | None:
        """Return a post by identifier, completed or not."""
        return self.session.get(Post, post_id)

    def get_completed(self, post_id: int) -> Post | None:
        """Return a post only if it is publicly visible."""
        result = self.session.execute(
            select(Post)
            .options(selectinload(Post.photos))
            .where(Post.id == post_id, Post.is_completed.is_(True))
        )
        return result.scalars().first()

    def get_photo(self, photo_id: int) -> Photo | None:
        """Return a photo by identifier."""
        return self.session.get(Photo, photo_id)

    def count_completed(self) -> int:
        """Return the number of publicly visible posts."""
        return self.session.execute(
            select(func.count()).select_from(Post).where(Post.is_completed.is_(True))
        ).scalar_one()

    def list_completed(self, *, offset: int, limit: int) -> list[Post]:
        """Return a page of visible posts, newest first."""
        result = self.session.execute(
            select(Post)
            .options(selectinload(Post.photos))
            .where(Post.is_completed.is_(True))
            .order_by(sort_key().desc(), Post.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars())

    def previous_completed(self, post: Post) -> Post | None:
        """Return the closest visible post older than ``post`` in feed order."""
        key = sort_key()
        result = self.session.execute(
            select(Post)
            .where(
                Post.is_completed.is_(True),
                or_(
                    key < post.sort_date,
                    and_(key == post.sort_date, Post.id < post.id),
                ),
            )
            .order_by(key.desc(), Post.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    def next_completed(self, post: Post) -> Post | None:
        """Return the closest visible post newer than ``post`` in feed order."""
        key = sort_key()
        result = self.session.execute(
            select(Post)
            .where(
                Post.is_completed.is_(True),
                or_(
                    key > post.sort_date,
                    and_(key == post.sort_date, Post.id > post.id),
                ),
            )
            .order_by(key.asc(), Post.id.asc())
            .limit(1)
        )
        return result.scalars().first()

    def delete(self, post: Post) -> None:
        """Delete a post; its photos cascade."""
        self.session.delete(post)
        self.session.commit()
