# src/family_album/models/photo.py
"""SQLAlchemy model for a single image belonging to a post."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from family_album.core.settings import settings
from family_album.db.session import Base
from family_album.db.time import naive_utcnow

if TYPE_CHECKING:
    from family_album.models.post import Post


def storage_url(path: str) -> str:
    """Return the public URL of a stored asset."""
    return f"{settings.storage_url_prefix.rstrip('/')}/{path.lstrip('/')}"


class Photo(Base):
    """An uploaded image with its stored original and square thumbnail."""

    __tablename__ = "photos"
    __table_args__ = (
        CheckConstraint("width > 0", name="ck_photos_width_positive"),
        CheckConstraint("height > 0", name="ck_photos_height_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Zero-based; position 0 is the cover.
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    original_path: Mapped[str] = mapped_column(String(255), nullable=False)
    # Null until the crop step has produced a thumbnail.
    thumbnail_path: Mapped[str | None] = mapped_column(String(255), nullable=True)
    width: Mapped[int] = mapped_column(Integer, nullable=False)
    height: Mapped[int] = mapped_column(Integer, nullable=False)
    taken_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=naive_utcnow, nullable=False)

    post: Mapped[Post] = relationship("Post", back_populates="photos")

    @property
    def is_square(self) -> bool:
        """Return True when the original needs no user cropping."""
        return self.width == self.height

    @property
    def original_url(self) -> str:
        """Return the public URL of the original asset."""
        return storage_url(self.original_path)

    @property
    def thumbnail_url(self) -> str | None:
        """Return the public URL of the thumbnail, if one exists."""
        return storage_url(self.thumbnail_path) if self.thumbnail_path else None
