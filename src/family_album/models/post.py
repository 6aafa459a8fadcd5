# src/family_album/models/post.py
"""SQLAlchemy model for posts, the publishable unit of the album."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from family_album.db.session import Base
from family_album.db.time import naive_utcnow

if TYPE_CHECKING:
    from family_album.models.photo import Photo
    from family_album.models.user import User


class PostState(str, enum.Enum):
    """Upload workflow states.

    ``captioned`` and ``cropped`` are alternative intermediate states; a post
    reaches ``completed`` once it has both a caption decision and a thumbnail
    for every photo, in either order.
    """

    INGESTED = "ingested"
    CAPTIONED = "captioned"
    CROPPED = "cropped"
    COMPLETED = "completed"


class Post(Base):
    """One or more photos published together with a shared caption.

    Only completed posts are visible in public listings.
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Falls back to created_at for ordering when null.
    display_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    state: Mapped[PostState] = mapped_column(
        Enum(
            PostState,
            name="post_state",
            values_callable=lambda states: [state.value for state in states],
            validate_strings=True,
        ),
        default=PostState.INGESTED,
        nullable=False,
    )
    # Mirrors state == COMPLETED so listings can filter on a plain boolean.
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=naive_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=naive_utcnow,
        onupdate=naive_utcnow,
        nullable=False,
    )

    user: Mapped[User] = relationship("User")
    photos: Mapped[list[Photo]] = relationship(
        "Photo",
        back_populates="post",
        order_by="Photo.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def sort_date(self) -> datetime:
        """Return the timestamp used to order the feed."""
        return self.display_date or self.created_at

    @property
    def cover_photo(self) -> Photo | None:
        """Return the photo at position 0, if any."""
        return self.photos[0] if self.photos else None

    @property
    def is_collection(self) -> bool:
        """Return True when the post holds more than one photo."""
        return len(self.photos) > 1

    def set_state(self, state: PostState) -> None:
        """Move to ``state`` and keep the completion flag in sync."""
        self.state = state
        self.is_completed = state is PostState.COMPLETED
