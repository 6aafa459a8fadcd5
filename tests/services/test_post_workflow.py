# tests/services/test_post_workflow.py
"""Tests for ingestion and the upload -> crop -> caption state machine."""

from datetime import datetime

import pytest
from PIL import Image
from sqlalchemy.exc import SQLAlchemyError

from family_album.models import Photo, Post, PostState
from family_album.services.crop import Anchor, CropRequest
from family_album.services.errors import (
    DecodeError,
    NotAuthorizedError,
    PostStateError,
    StorageError,
    UnsupportedFormatError,
    UploadRejectedError,
)
from family_album.services.ingestion import IngestionService, UploadLimits
from family_album.services.post_workflow import NextStep, PostWorkflow, normalize_caption
from family_album.services.storage import ORIGINALS_AREA, THUMBNAILS_AREA


def _ingest(ingestion, image_file, user, name="photo.jpg", width=1200, height=900, post=None, **kw):
    path = image_file(name, width, height, **kw)
    return ingestion.ingest(path, filename=name, content_type="image/jpeg", user=user, post=post)


def _stored_originals(storage) -> list:
    directory = storage.root / ORIGINALS_AREA
    return list(directory.iterdir()) if directory.exists() else []


def test_ingest_creates_post_and_photo(ingestion, image_file, test_user, storage) -> None:
    photo = _ingest(ingestion, image_file, test_user, taken="2023:06:15 14:30:00")

    post = photo.post
    assert post.state is PostState.INGESTED
    assert post.is_completed is False
    assert post.caption is None
    assert post.display_date == datetime(2023, 6, 15, 14, 30)
    assert photo.taken_at == datetime(2023, 6, 15, 14, 30)
    assert (photo.width, photo.height) == (1200, 900)
    assert photo.position == 0
    assert photo.thumbnail_path is None
    assert storage.exists(photo.original_path)
    assert PostWorkflow.next_step(post) is NextStep.CROP


def test_ingest_rejects_unknown_format(ingestion, tmp_path, test_user, storage) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(UnsupportedFormatError):
        ingestion.ingest(path, filename="notes.txt", content_type="text/plain", user=test_user)
    assert _stored_originals(storage) == []


def test_failed_commit_removes_stored_original(
    ingestion, image_file, test_user, storage, db_session, monkeypatch
) -> None:
    def broken_commit() -> None:
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with pytest.raises(StorageError):
        _ingest(ingestion, image_file, test_user)
    assert _stored_originals(storage) == []


def test_validate_upload_limits(ingestion) -> None:
    ingestion.validate_upload("beach.jpg", 1024)
    with pytest.raises(UploadRejectedError, match="No file"):
        ingestion.validate_upload(None, 10)
    with pytest.raises(UploadRejectedError, match="No file"):
        ingestion.validate_upload("empty.jpg", 0)
    with pytest.raises(UploadRejectedError, match="10 MB"):
        ingestion.validate_upload("huge.jpg", 10 * 1024 * 1024 + 1)


def test_crop_then_caption_completes(ingestion, workflow, image_file, test_user) -> None:
    photo = _ingest(ingestion, image_file, test_user)

    workflow.submit_crop(photo, test_user, CropRequest(anchor=Anchor.LEFT))
    assert photo.post.state is PostState.CROPPED
    assert PostWorkflow.next_step(photo.post) is NextStep.CAPTION

    post = workflow.submit_caption(photo.post, test_user, "  Beach day  ")
    assert post.state is PostState.COMPLETED
    assert post.is_completed is True
    assert post.caption == "Beach day"
    assert PostWorkflow.next_step(post) is NextStep.DONE


def test_caption_then_crop_completes(ingestion, workflow, image_file, test_user) -> None:
    photo = _ingest(ingestion, image_file, test_user)

    post = workflow.submit_caption(photo.post, test_user, "Grandma's birthday")
    assert post.state is PostState.CAPTIONED
    assert post.is_completed is False
    assert PostWorkflow.next_step(post) is NextStep.CROP

    workflow.submit_crop(photo, test_user, CropRequest())
    assert post.state is PostState.COMPLETED
    assert post.caption == "Grandma's birthday"


def test_empty_caption_before_crop_is_still_a_decision(
    ingestion, workflow, image_file, test_user
) -> None:
    photo = _ingest(ingestion, image_file, test_user)

    post = workflow.submit_caption(photo.post, test_user, "   ")
    assert post.caption is None
    assert post.state is PostState.CAPTIONED

    workflow.submit_crop(photo, test_user, CropRequest())
    assert post.state is PostState.COMPLETED


def test_square_photo_is_cropped_on_caption(
    ingestion, workflow, image_file, test_user, storage
) -> None:
    photo = _ingest(ingestion, image_file, test_user, width=600, height=600)
    assert PostWorkflow.next_step(photo.post) is NextStep.CAPTION

    post = workflow.submit_caption(photo.post, test_user, None)

    assert post.state is PostState.COMPLETED
    assert photo.thumbnail_path is not None
    assert storage.exists(photo.thumbnail_path)


def test_auto_crop_square_only_touches_square_photos(
    ingestion, workflow, image_file, test_user
) -> None:
    landscape = _ingest(ingestion, image_file, test_user)
    assert workflow.auto_crop_square(landscape) is None

    square = _ingest(ingestion, image_file, test_user, name="sq.jpg", width=300, height=300)
    box = workflow.auto_crop_square(square)
    assert box is not None and box.size == 300
    assert square.post.state is PostState.CROPPED
    assert workflow.auto_crop_square(square) is None


def test_recrop_replaces_thumbnail(ingestion, workflow, image_file, test_user, storage) -> None:
    photo = _ingest(ingestion, image_file, test_user)
    workflow.submit_crop(photo, test_user, CropRequest(anchor=Anchor.LEFT))
    first = photo.thumbnail_path

    workflow.submit_crop(photo, test_user, CropRequest(anchor=Anchor.RIGHT))

    assert photo.thumbnail_path != first
    assert not storage.exists(first)
    assert storage.exists(photo.thumbnail_path)
    assert photo.post.state is PostState.CROPPED


def test_multi_photo_post_needs_every_thumbnail(
    ingestion, workflow, image_file, test_user
) -> None:
    first = _ingest(ingestion, image_file, test_user)
    second = _ingest(ingestion, image_file, test_user, name="two.jpg", post=first.post)
    post = first.post
    assert second.post_id == post.id
    assert second.position == 1
    assert post.is_collection

    workflow.submit_caption(post, test_user, "Trip")
    workflow.submit_crop(first, test_user, CropRequest())
    assert post.state is PostState.CAPTIONED
    assert PostWorkflow.first_uncropped(post) is second

    workflow.submit_crop(second, test_user, CropRequest())
    assert post.state is PostState.COMPLETED


def test_other_users_cannot_modify(ingestion, workflow, image_file, test_user, other_user) -> None:
    photo = _ingest(ingestion, image_file, test_user)

    with pytest.raises(NotAuthorizedError):
        workflow.submit_crop(photo, other_user, CropRequest())
    with pytest.raises(NotAuthorizedError):
        workflow.submit_caption(photo.post, other_user, "Not mine")
    assert photo.post.state is PostState.INGESTED
    assert photo.thumbnail_path is None


def test_admin_may_modify_any_post(ingestion, workflow, image_file, test_user, admin_user) -> None:
    photo = _ingest(ingestion, image_file, test_user)
    workflow.submit_crop(photo, admin_user, CropRequest())
    post = workflow.submit_caption(photo.post, admin_user, "Tidied up")
    assert post.state is PostState.COMPLETED


def test_append_rules(ingestion, workflow, image_file, test_user, other_user) -> None:
    photo = _ingest(ingestion, image_file, test_user)
    post = photo.post

    with pytest.raises(NotAuthorizedError):
        _ingest(ingestion, image_file, other_user, name="intruder.jpg", post=post)

    workflow.submit_crop(photo, test_user, CropRequest())
    workflow.submit_caption(post, test_user, "Done")
    with pytest.raises(PostStateError):
        _ingest(ingestion, image_file, test_user, name="late.jpg", post=post)


def test_append_respects_files_per_post(db_session, storage, image_file, test_user) -> None:
    limited = IngestionService(db_session, storage, UploadLimits(1024 * 1024, 1))
    photo = _ingest(limited, image_file, test_user)
    with pytest.raises(UploadRejectedError, match="at most 1"):
        _ingest(limited, image_file, test_user, name="extra.jpg", post=photo.post)


def test_normalize_caption() -> None:
    assert normalize_caption(None) is None
    assert normalize_caption("") is None
    assert normalize_caption(" \n ") is None
    assert normalize_caption(" hi ") == "hi"


def _stored_thumbnails(storage) -> list:
    directory = storage.root / THUMBNAILS_AREA
    return list(directory.iterdir()) if directory.exists() else []


def test_failed_recrop_keeps_previous_thumbnail(
    ingestion, workflow, image_file, test_user, storage, db_session, monkeypatch
) -> None:
    photo = _ingest(ingestion, image_file, test_user)
    workflow.submit_crop(photo, test_user, CropRequest(anchor=Anchor.LEFT))
    first = photo.thumbnail_path

    def broken_commit() -> None:
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with pytest.raises(StorageError):
        workflow.submit_crop(photo, test_user, CropRequest(anchor=Anchor.RIGHT))

    assert photo.thumbnail_path == first
    assert storage.exists(first)
    assert [path.name for path in _stored_thumbnails(storage)] == [first.rsplit("/", 1)[1]]


def test_failed_auto_crop_on_caption_removes_new_thumbnails(
    ingestion, workflow, image_file, test_user, storage
) -> None:
    first = _ingest(ingestion, image_file, test_user, name="a.jpg", width=400, height=400)
    second = _ingest(
        ingestion, image_file, test_user, name="b.jpg", width=400, height=400, post=first.post
    )
    storage.delete(second.original_path)

    with pytest.raises(DecodeError):
        workflow.submit_caption(first.post, test_user, "Cousins")

    assert _stored_thumbnails(storage) == []
    assert first.thumbnail_path is None
    assert first.post.state is PostState.INGESTED
    assert first.post.caption is None


def test_discard_removes_single_photo_post(
    ingestion, workflow, image_file, test_user, storage, db_session
) -> None:
    photo = _ingest(ingestion, image_file, test_user, width=300, height=300)
    workflow.auto_crop_square(photo)

    ingestion.discard(photo)

    assert db_session.query(Post).count() == 0
    assert db_session.query(Photo).count() == 0
    assert _stored_originals(storage) == []
    assert _stored_thumbnails(storage) == []


def test_discard_keeps_post_with_other_photos(
    ingestion, image_file, test_user, storage, db_session
) -> None:
    first = _ingest(ingestion, image_file, test_user)
    second = _ingest(ingestion, image_file, test_user, name="two.jpg", post=first.post)

    ingestion.discard(second)

    post = db_session.get(Post, first.post_id)
    assert [photo.id for photo in post.photos] == [first.id]
    assert [path.name for path in _stored_originals(storage)] == [
        first.original_path.rsplit("/", 1)[1]
    ]


def test_reported_heic_type_does_not_transcode_png(
    ingestion, tmp_path, test_user, storage
) -> None:
    path = tmp_path / "pic.png"
    Image.new("RGBA", (40, 30), (10, 20, 30, 128)).save(path, "PNG")

    photo = ingestion.ingest(path, filename="pic.png", content_type="image/heic", user=test_user)

    assert photo.original_path.endswith(".png")
    assert storage.read(photo.original_path) == path.read_bytes()
