# src/family_album/models/user.py
"""SQLAlchemy model for family members who can sign in."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from family_album.db.session import Base
from family_album.db.time import naive_utcnow


class User(Base):
    """A family member. Admins may edit and delete anyone's posts."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=naive_utcnow, nullable=False)

    def can_modify(self, owner_id: int) -> bool:
        """Return True when this user owns the entity or holds the admin capability."""
        return self.is_admin or self.id == owner_id
