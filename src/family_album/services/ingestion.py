"""Ingestion of uploaded files into stored originals and Photo rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from family_album.core.settings import Settings
from family_album.models import Photo, Post, PostState, User
from family_album.services.errors import (
    NotAuthorizedError,
    PostStateError,
    StorageError,
    UnsupportedFormatError,
    UploadRejectedError,
)
from family_album.services.image_format import ImageFormat, classify
from family_album.services.metadata import extract_taken_at, parse_taken_at
from family_album.services.originals import store_original
from family_album.services.storage import LocalStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadLimits:
    """Upload constraints handed to the ingestion service."""

    max_upload_bytes: int
    max_files_per_post: int

    @classmethod
    def from_settings(cls, settings: Settings) -> UploadLimits:
        return cls(
            max_upload_bytes=settings.max_upload_bytes,
            max_files_per_post=settings.max_files_per_post,
        )

    @property
    def max_upload_label(self) -> str:
        return f"{self.max_upload_bytes / (1024 * 1024):g} MB"


class IngestionService:
    """Turn uploaded temporary files into stored originals attached to posts."""

    def __init__(
        self,
        db: Session,
        storage: LocalStorage,
        limits: UploadLimits,
        *,
        heic_quality: int = 90,
    ) -> None:
        self.db = db
        self.storage = storage
        self.limits = limits
        self.heic_quality = heic_quality

    def validate_upload(self, filename: str | None, size: int | None) -> None:
        """Reject missing or oversized uploads before any processing.

        Raises:
            UploadRejectedError: If no file was sent or it exceeds the size limit.
        """
        if not filename or size == 0:
            raise UploadRejectedError("No file was uploaded. Please choose a photo.")
        if size is not None and size > self.limits.max_upload_bytes:
            logger.warning(
                "Photo upload rejected: %d bytes exceeds limit of %d bytes",
                size,
                self.limits.max_upload_bytes,
            )
            raise UploadRejectedError(
                f"The photo may not be larger than {self.limits.max_upload_label}."
            )

    def _check_target_post(self, post: Post, user: User) -> None:
        if not user.can_modify(post.user_id):
            raise NotAuthorizedError("You can only add photos to your own posts")
        if post.state is PostState.COMPLETED:
            raise PostStateError("Photos cannot be added to a post that is already published")
        if len(post.photos) >= self.limits.max_files_per_post:
            raise UploadRejectedError(
                f"A post may contain at most {self.limits.max_files_per_post} photos."
            )

    def _next_position(self, post: Post) -> int:
        current = self.db.query(func.max(Photo.position)).filter(Photo.post_id == post.id).scalar()
        return 0 if current is None else current + 1

    def ingest(
        self,
        path: str | Path,
        *,
        filename: str | None,
        content_type: str | None,
        user: User,
        post: Post | None = None,
    ) -> Photo:
        """Store an uploaded file and create its Photo (and Post, if needed).

        Either the original is written and the rows committed, or neither
        survives.

        Args:
            path: Temporary file holding the upload.
            filename: Client-supplied file name.
            content_type: Client-supplied MIME type; only logged.
            user: Uploading user.
            post: Existing post to append to; a new post is created when None.

        Returns:
            The committed Photo with its post loaded.

        Raises:
            UploadRejectedError: Unsupported format or post already full.
            NotAuthorizedError: Appending to somebody else's post.
            PostStateError: Appending to a completed post.
            DecodeError: The image could not be decoded.
            StorageError: The original could not be written or the rows persisted.
        """
        if post is not None:
            self._check_target_post(post, user)

        image_format = classify(path, filename)
        if image_format is ImageFormat.UNKNOWN:
            raise UnsupportedFormatError("The file must be a JPEG, PNG, GIF or HEIC image.")

        taken_at = parse_taken_at(extract_taken_at(path))
        stored = store_original(
            self.storage,
            path,
            image_format,
            heic_quality=self.heic_quality,
        )

        try:
            if post is None:
                post = Post(user_id=user.id, display_date=taken_at)
                post.set_state(PostState.INGESTED)
                self.db.add(post)
                self.db.flush()
                position = 0
            else:
                position = self._next_position(post)

            photo = Photo(
                user_id=user.id,
                post_id=post.id,
                position=position,
                original_path=stored.path,
                width=stored.width,
                height=stored.height,
                taken_at=taken_at,
            )
            self.db.add(photo)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.storage.delete(stored.path)
            logger.error("Could not persist photo for %s: %s", stored.path, exc)
            raise StorageError("The photo could not be saved. Please try again.") from exc

        self.db.refresh(photo)
        self.db.refresh(post)
        logger.info(
            "Ingested photo %d into post %d (%s, reported %s, %dx%d)",
            photo.id,
            post.id,
            image_format.value,
            content_type,
            photo.width,
            photo.height,
        )
        return photo

    def discard(self, photo: Photo) -> None:
        """Undo an ingest whose follow-up processing failed.

        Deletes the photo's stored files and its row. The post goes with it
        when it holds no other photo.
        """
        post = photo.post
        photo_id, post_id = photo.id, post.id
        for path in (photo.original_path, photo.thumbnail_path):
            if path:
                self.storage.delete(path)
        if len(post.photos) <= 1:
            self.db.delete(post)
        else:
            post.photos.remove(photo)
        self.db.commit()
        logger.info("Discarded photo %d of post %d after a failed upload", photo_id, post_id)
