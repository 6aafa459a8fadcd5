# src/family_album/api/v1/endpoints/photos.py
"""Upload, crop and caption endpoints for the Family Album API."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from family_album.api.v1.dependencies import (
    CurrentUserDep,
    IngestionDep,
    SessionDep,
    StorageDep,
    WorkflowDep,
)
from family_album.api.v1.errors import http_error, json_error, status_for
from family_album.core.settings import settings
from family_album.models import Photo, Post, User
from family_album.repositories.post_repo import PostRepository
from family_album.schemas.photo import (
    AsyncUploadResponse,
    PhotoStatusResponse,
    UploadErrorResponse,
)
from family_album.services.crop import Anchor, CropRequest
from family_album.services.errors import NotAuthorizedError, PipelineError, UploadRejectedError
from family_album.services.post_workflow import NextStep, PostWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/photos", tags=["photos"])

HOME_URL = "/"


@contextmanager
def _upload_on_disk(upload: UploadFile) -> Iterator[Path]:
    """Copy an upload to a named temporary file and remove it afterwards."""
    suffix = Path(upload.filename or "").suffix
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as handle:
        shutil.copyfileobj(upload.file, handle)
        temp_path = Path(handle.name)
    try:
        yield temp_path
    finally:
        temp_path.unlink(missing_ok=True)


def _get_photo(db: Session, photo_id: int) -> Photo:
    photo = PostRepository(db).get_photo(photo_id)
    if photo is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Photo not found",
        )
    return photo


def _get_owned_photo(db: Session, photo_id: int, user: User) -> Photo:
    photo = _get_photo(db, photo_id)
    try:
        PostWorkflow.ensure_can_modify(photo.post, user)
    except NotAuthorizedError as exc:
        raise http_error(exc) from exc
    return photo


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def _step_url(post: Post, photo: Photo) -> str:
    step = PostWorkflow.next_step(post)
    if step is NextStep.DONE:
        return HOME_URL
    if step is NextStep.CROP:
        pending = PostWorkflow.first_uncropped(post) or photo
        return f"/photos/{pending.id}/crop"
    return f"/photos/{photo.id}/caption"


@router.post("/upload", response_class=RedirectResponse)
def upload_photo(
    current_user: CurrentUserDep,
    ingestion: IngestionDep,
    workflow: WorkflowDep,
    photo: Annotated[UploadFile | None, File()] = None,
) -> RedirectResponse:
    """Run the full pipeline for a single uploaded photo.

    Square originals get their centred thumbnail straight away and skip
    the crop step.

    Args:
        current_user: Authenticated uploader
        ingestion: Ingestion service
        workflow: Post workflow service
        photo: Uploaded image file

    Returns:
        Redirect to the caption step (square) or the crop step

    Raises:
        HTTPException: If validation, decoding or storage fails
    """
    if photo is None:
        raise http_error(UploadRejectedError("No file was uploaded. Please choose a photo."))

    with _upload_on_disk(photo) as temp_path:
        try:
            ingestion.validate_upload(photo.filename, temp_path.stat().st_size)
            stored = ingestion.ingest(
                temp_path,
                filename=photo.filename,
                content_type=photo.content_type,
                user=current_user,
            )
        except PipelineError as exc:
            logger.warning("Photo upload failed for user %d: %s", current_user.id, exc)
            raise http_error(exc) from exc

    if stored.is_square:
        try:
            workflow.auto_crop_square(stored)
        except PipelineError as exc:
            logger.warning("Thumbnail failed for uploaded photo %d: %s", stored.id, exc)
            ingestion.discard(stored)
            raise http_error(exc) from exc

    if stored.thumbnail_path:
        return _redirect(f"/photos/{stored.id}/caption")
    return _redirect(f"/photos/{stored.id}/crop")


@router.post(
    "/upload/async",
    response_model=AsyncUploadResponse,
    responses={
        status.HTTP_403_FORBIDDEN: {
            "model": UploadErrorResponse,
            "description": "Not the owner of the target post",
        },
        status.HTTP_404_NOT_FOUND: {"model": UploadErrorResponse, "description": "Unknown post"},
        status.HTTP_422_UNPROCESSABLE_ENTITY: {
            "model": UploadErrorResponse,
            "description": "Invalid upload",
        },
    },
)
def upload_photo_async(
    db: SessionDep,
    current_user: CurrentUserDep,
    ingestion: IngestionDep,
    photo: Annotated[UploadFile | None, File()] = None,
    post_id: Annotated[int | None, Form()] = None,
) -> AsyncUploadResponse | JSONResponse:
    """Ingest a photo in the background while the browser shows a preview.

    Only the original is stored; crop and caption follow as separate
    requests. Passing ``post_id`` appends the photo to an existing post.

    Returns:
        Identifiers and dimensions, or a ``{success: false, message}`` envelope
    """
    if photo is None:
        return json_error(
            "No file was uploaded. Please choose a photo.",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    target_post: Post | None = None
    if post_id is not None:
        target_post = PostRepository(db).get_by_id(post_id)
        if target_post is None:
            return json_error("Post not found", status.HTTP_404_NOT_FOUND)

    logger.info(
        "Async upload attempt by user %d: %s (%s)",
        current_user.id,
        photo.filename,
        photo.content_type,
    )
    with _upload_on_disk(photo) as temp_path:
        try:
            ingestion.validate_upload(photo.filename, temp_path.stat().st_size)
            stored = ingestion.ingest(
                temp_path,
                filename=photo.filename,
                content_type=photo.content_type,
                user=current_user,
                post=target_post,
            )
        except PipelineError as exc:
            logger.warning("Async photo upload failed for user %d: %s", current_user.id, exc)
            return json_error(str(exc), status_for(exc))

    return AsyncUploadResponse(
        photo_id=stored.id,
        post_id=stored.post_id,
        width=stored.width,
        height=stored.height,
    )


@router.get("/{photo_id}", response_model=PhotoStatusResponse)
def get_photo_status(
    photo_id: int,
    db: SessionDep,
    current_user: CurrentUserDep,
) -> PhotoStatusResponse:
    """Return a photo and its post's workflow state to the uploader."""
    photo = _get_owned_photo(db, photo_id, current_user)
    post = photo.post
    return PhotoStatusResponse(
        id=photo.id,
        post_id=photo.post_id,
        user_id=photo.user_id,
        position=photo.position,
        width=photo.width,
        height=photo.height,
        taken_at=photo.taken_at,
        original_url=photo.original_url,
        thumbnail_url=photo.thumbnail_url,
        post_state=post.state,
        caption=post.caption,
        next_step=PostWorkflow.next_step(post).value,
    )


@router.post("/{photo_id}/crop", response_class=RedirectResponse)
def crop_photo(
    photo_id: int,
    db: SessionDep,
    current_user: CurrentUserDep,
    workflow: WorkflowDep,
    anchor: Annotated[Anchor | None, Form()] = None,
    crop_x: Annotated[int | None, Form(ge=0)] = None,
    crop_y: Annotated[int | None, Form(ge=0)] = None,
    crop_size: Annotated[int | None, Form(ge=1)] = None,
) -> RedirectResponse:
    """Create the square thumbnail from an anchor or explicit coordinates.

    Args:
        photo_id: Photo to crop
        db: Database session
        current_user: Authenticated user (owner or admin)
        workflow: Post workflow service
        anchor: Named crop bias, used when coordinates are incomplete
        crop_x: Left edge chosen in the cropper
        crop_y: Top edge chosen in the cropper
        crop_size: Square edge length chosen in the cropper

    Returns:
        Redirect to the next step of the upload flow

    Raises:
        HTTPException: If the photo is missing, not owned, or cannot be decoded
    """
    photo = _get_owned_photo(db, photo_id, current_user)
    request = CropRequest.from_form(anchor, crop_x, crop_y, crop_size)
    try:
        workflow.submit_crop(photo, current_user, request)
    except PipelineError as exc:
        logger.warning("Crop failed for photo %d: %s", photo_id, exc)
        raise http_error(exc) from exc

    return _redirect(_step_url(photo.post, photo))


@router.post("/{photo_id}/caption", response_class=RedirectResponse)
def caption_photo(
    photo_id: int,
    db: SessionDep,
    current_user: CurrentUserDep,
    workflow: WorkflowDep,
    caption: Annotated[str | None, Form(max_length=settings.caption_max_length)] = None,
) -> RedirectResponse:
    """Record the caption for the photo's post.

    Returns:
        Redirect home once the post is published, otherwise to the crop step
    """
    photo = _get_owned_photo(db, photo_id, current_user)
    try:
        post = workflow.submit_caption(photo.post, current_user, caption)
    except PipelineError as exc:
        logger.warning("Caption failed for post %d: %s", photo.post_id, exc)
        raise http_error(exc) from exc

    return _redirect(_step_url(post, photo))


@router.get("/{photo_id}/download", response_class=FileResponse)
def download_photo(
    photo_id: int,
    db: SessionDep,
    storage: StorageDep,
) -> FileResponse:
    """Download the original of a photo from a published post."""
    photo = _get_photo(db, photo_id)
    if not photo.post.is_completed or not storage.exists(photo.original_path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Photo not found",
        )
    path = storage.absolute_path(photo.original_path)
    return FileResponse(path, filename=path.name)
