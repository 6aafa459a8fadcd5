# tests/conftest.py
from __future__ import annotations

import io
import os
import tempfile
from collections.abc import Callable, Generator, Iterator
from datetime import datetime
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from PIL import ExifTags, Image
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="family-album-"))

from family_album.api.v1.dependencies import get_storage_dep
from family_album.core.security import create_access_token
from family_album.db.session import Base
from family_album.db.session import get_db as app_get_session
from family_album.main import app as fastapi_app
from family_album.models import Photo, Post, PostState, User
from family_album.services.ingestion import IngestionService, UploadLimits
from family_album.services.post_workflow import PostWorkflow
from family_album.services.storage import LocalStorage

TEST_DB_URL = "sqlite://"

ImageFactory = Callable[..., bytes]


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so every test starts from empty tables.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def storage(tmp_path: Path) -> LocalStorage:
    """Return storage rooted in a per-test directory."""
    return LocalStorage(tmp_path / "storage")


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    storage: LocalStorage,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_storage_dep] = lambda: storage
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_storage_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test", follow_redirects=False) as test_client:
        yield test_client


def _create_user(db: Session, email: str, display_name: str, *, is_admin: bool = False) -> User:
    user = User(email=email, display_name=display_name, is_admin=is_admin)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Create and return the primary uploader."""
    return _create_user(db_session, "ana@example.com", "Ana")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """Create and return a second family member."""
    return _create_user(db_session, "ben@example.com", "Ben")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    """Create and return an administrator."""
    return _create_user(db_session, "admin@example.com", "Admin", is_admin=True)


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary user."""
    return {"Authorization": f"Bearer {create_access_token(test_user.id)}"}


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the second user."""
    return {"Authorization": f"Bearer {create_access_token(other_user.id)}"}


@pytest.fixture()
def admin_auth_token(admin_user: User) -> dict[str, str]:
    """Return authorization headers for the administrator."""
    return {"Authorization": f"Bearer {create_access_token(admin_user.id)}"}


def encode_image(
    width: int,
    height: int,
    fmt: str = "JPEG",
    *,
    color: tuple[int, int, int] = (200, 120, 40),
    taken: str | None = None,
    datetime_tag: str | None = None,
    orientation: int | None = None,
) -> bytes:
    """Encode a solid image, optionally carrying Exif dates and orientation."""
    image = Image.new("RGB", (width, height), color)
    exif = Image.Exif()
    if taken is not None:
        exif[ExifTags.IFD.Exif] = {ExifTags.Base.DateTimeOriginal: taken}
    if datetime_tag is not None:
        exif[ExifTags.Base.DateTime] = datetime_tag
    if orientation is not None:
        exif[ExifTags.Base.Orientation] = orientation

    buffer = io.BytesIO()
    if fmt == "JPEG" and len(exif):
        image.save(buffer, fmt, exif=exif.tobytes())
    else:
        image.save(buffer, fmt)
    return buffer.getvalue()


@pytest.fixture()
def image_bytes() -> ImageFactory:
    """Return the in-memory image encoder."""
    return encode_image


@pytest.fixture()
def image_file(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing encoded images into the test directory."""

    def _write(name: str, *args, **kwargs) -> Path:
        path = tmp_path / name
        path.write_bytes(encode_image(*args, **kwargs))
        return path

    return _write


@pytest.fixture()
def truncated_jpeg() -> Callable[[int, int], bytes]:
    """Return a factory for JPEGs whose scan data is cut off half way.

    The header is intact, so the file opens and reports its size, but the
    pixels cannot be decoded.
    """

    def _encode(width: int, height: int) -> bytes:
        noise = Image.effect_noise((width, height), 64).convert("RGB")
        buffer = io.BytesIO()
        noise.save(buffer, "JPEG", quality=90)
        data = buffer.getvalue()
        return data[: len(data) // 2]

    return _encode


@pytest.fixture()
def ingestion(db_session: Session, storage: LocalStorage) -> IngestionService:
    return IngestionService(
        db_session,
        storage,
        UploadLimits(max_upload_bytes=10 * 1024 * 1024, max_files_per_post=10),
    )


@pytest.fixture()
def workflow(db_session: Session, storage: LocalStorage) -> PostWorkflow:
    return PostWorkflow(db_session, storage)


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    """Return a factory for posts with photo rows (no files on disk)."""

    def _make(
        user: User,
        *,
        caption: str | None = None,
        display_date: datetime | None = None,
        state: PostState = PostState.COMPLETED,
        photo_count: int = 1,
    ) -> Post:
        post = Post(user_id=user.id, caption=caption, display_date=display_date)
        post.set_state(state)
        db_session.add(post)
        db_session.flush()
        for position in range(photo_count):
            db_session.add(
                Photo(
                    user_id=user.id,
                    post_id=post.id,
                    position=position,
                    original_path=f"photos/originals/{post.id}-{position}.jpg",
                    thumbnail_path=f"photos/thumbnails/{post.id}-{position}.jpg",
                    width=1200,
                    height=900,
                )
            )
        db_session.commit()
        db_session.refresh(post)
        return post

    return _make
