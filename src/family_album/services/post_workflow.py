"""Upload -> crop -> caption workflow for posts.

A post moves through ``PostState``:

* ``ingested``: originals stored, no caption decision, thumbnails missing.
* ``captioned``: caption decision recorded, some thumbnails still missing.
* ``cropped``: every photo has a thumbnail, no caption decision yet.
* ``completed``: both conditions hold; the post becomes publicly visible.

Caption and crop may happen in either order. Transitions are driven by the
stored state rather than by inspecting ``caption`` for null, so an explicitly
empty caption submitted before cropping is still recorded as a decision.
Posts abandoned mid-way simply stay invisible.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from family_album.models import Photo, Post, PostState, User
from family_album.services.crop import Anchor, CropBox, CropRequest
from family_album.services.errors import NotAuthorizedError, PipelineError, StorageError
from family_album.services.storage import LocalStorage
from family_album.services.thumbnails import (
    THUMBNAIL_QUALITY,
    THUMBNAIL_SIZE,
    render_thumbnail,
)

logger = logging.getLogger(__name__)


class NextStep(str, Enum):
    """What the uploader still has to do for a post."""

    CROP = "crop"
    CAPTION = "caption"
    DONE = "done"


def normalize_caption(caption: str | None) -> str | None:
    """Collapse blank captions to None."""
    if caption is None:
        return None
    stripped = caption.strip()
    return stripped or None


class PostWorkflow:
    """State transitions for the upload flow of a single post."""

    def __init__(
        self,
        db: Session,
        storage: LocalStorage,
        *,
        thumbnail_size: int = THUMBNAIL_SIZE,
        thumbnail_quality: int = THUMBNAIL_QUALITY,
    ) -> None:
        self.db = db
        self.storage = storage
        self.thumbnail_size = thumbnail_size
        self.thumbnail_quality = thumbnail_quality

    @staticmethod
    def ensure_can_modify(post: Post, user: User) -> None:
        """Reject users who neither own the post nor are administrators.

        Raises:
            NotAuthorizedError: If the user may not modify the post.
        """
        if not user.can_modify(post.user_id):
            raise NotAuthorizedError("You can only modify your own posts")

    @staticmethod
    def all_cropped(post: Post) -> bool:
        """Return True when every photo of the post has a thumbnail."""
        return bool(post.photos) and all(photo.thumbnail_path for photo in post.photos)

    @staticmethod
    def first_uncropped(post: Post) -> Photo | None:
        """Return the lowest-position photo still lacking a thumbnail."""
        return next((photo for photo in post.photos if not photo.thumbnail_path), None)

    @classmethod
    def next_step(cls, post: Post) -> NextStep:
        """Return the step the uploader should be sent to next."""
        if post.state is PostState.COMPLETED:
            return NextStep.DONE
        if not cls.all_cropped(post):
            # Square photos are cropped automatically once the caption arrives.
            pending = [photo for photo in post.photos if not photo.thumbnail_path]
            if post.state is PostState.INGESTED and all(photo.is_square for photo in pending):
                return NextStep.CAPTION
            return NextStep.CROP
        return NextStep.CAPTION

    def _apply_thumbnail(
        self, photo: Photo, request: CropRequest
    ) -> tuple[CropBox, str, str | None]:
        """Render a new thumbnail and point ``photo`` at it.

        Returns the resolved box, the new path and the path it replaces. The
        replaced file stays on disk until the change is committed.
        """
        rendered = render_thumbnail(
            self.storage,
            photo.original_path,
            request,
            size=self.thumbnail_size,
            quality=self.thumbnail_quality,
        )
        previous = photo.thumbnail_path
        photo.thumbnail_path = rendered.path
        return rendered.box, rendered.path, previous

    def _delete_files(self, paths: list[str | None]) -> None:
        for path in paths:
            if path:
                self.storage.delete(path)

    def _commit(self, fresh: list[str], stale: list[str | None]) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self._delete_files(fresh)
            logger.error("Could not persist thumbnails %s: %s", fresh, exc)
            raise StorageError("The thumbnail could not be saved. Please try again.") from exc
        self._delete_files([path for path in stale if path not in fresh])

    def _after_crop(self, post: Post) -> None:
        if not self.all_cropped(post):
            return
        if post.state is PostState.INGESTED:
            post.set_state(PostState.CROPPED)
        elif post.state is PostState.CAPTIONED:
            post.set_state(PostState.COMPLETED)

    def auto_crop_square(self, photo: Photo) -> CropBox | None:
        """Give a square photo its centred thumbnail without asking the user.

        Returns the resolved box, or None if the photo is not square or
        already has a thumbnail.
        """
        if not photo.is_square or photo.thumbnail_path:
            return None
        box, fresh, previous = self._apply_thumbnail(photo, CropRequest(anchor=Anchor.CENTER))
        self._after_crop(photo.post)
        self._commit([fresh], [previous])
        self.db.refresh(photo.post)
        return box

    def submit_crop(self, photo: Photo, user: User, request: CropRequest) -> CropBox:
        """Render the thumbnail for ``photo`` and advance its post.

        ``ingested`` becomes ``cropped`` and ``captioned`` becomes
        ``completed`` once every photo of the post has a thumbnail. Re-cropping
        replaces the previous thumbnail without changing the state.

        Raises:
            NotAuthorizedError: If the user may not modify the post.
            DecodeError: If the original cannot be decoded.
            StorageError: If the thumbnail cannot be written.
        """
        post = photo.post
        self.ensure_can_modify(post, user)

        box, fresh, previous = self._apply_thumbnail(photo, request)
        previous_state = post.state
        self._after_crop(post)
        self._commit([fresh], [previous])
        self.db.refresh(post)
        logger.info(
            "Cropped photo %d of post %d: %s -> %s",
            photo.id,
            post.id,
            previous_state.value,
            post.state.value,
        )
        return box

    def submit_caption(self, post: Post, user: User, caption: str | None) -> Post:
        """Record the caption decision and advance the post.

        From ``ingested`` the post moves to ``captioned``, unless every photo
        still lacking a thumbnail is square: those are auto-cropped with the
        centre anchor and the post completes directly. From ``cropped`` the
        post completes. In ``captioned`` and ``completed`` only the caption
        changes.

        Raises:
            NotAuthorizedError: If the user may not modify the post.
            DecodeError: If an auto-crop cannot decode its original.
            StorageError: If an auto-crop thumbnail cannot be written.
        """
        self.ensure_can_modify(post, user)
        previous_state = post.state
        post.caption = normalize_caption(caption)
        fresh: list[str] = []

        if post.state is PostState.INGESTED:
            pending = [photo for photo in post.photos if not photo.thumbnail_path]
            if all(photo.is_square for photo in pending):
                center = CropRequest(anchor=Anchor.CENTER)
                try:
                    for photo in pending:
                        _, path, _ = self._apply_thumbnail(photo, center)
                        fresh.append(path)
                except PipelineError:
                    self.db.rollback()
                    self._delete_files(fresh)
                    raise
            if self.all_cropped(post):
                post.set_state(PostState.COMPLETED)
            else:
                post.set_state(PostState.CAPTIONED)
        elif post.state is PostState.CROPPED:
            post.set_state(PostState.COMPLETED)

        self._commit(fresh, [])
        self.db.refresh(post)
        logger.info(
            "Captioned post %d: %s -> %s",
            post.id,
            previous_state.value,
            post.state.value,
        )
        return post
