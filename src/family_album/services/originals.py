"""Persistence of the canonical original asset for an uploaded photo."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from family_album.services.errors import CodecUnavailableError, DecodeError, StorageError
from family_album.services.image_format import ImageFormat, heif_codec_available
from family_album.services.storage import ORIGINALS_AREA, LocalStorage, random_path

logger = logging.getLogger(__name__)

DEFAULT_HEIC_QUALITY = 90


@dataclass(frozen=True)
class StoredOriginal:
    """Location and pixel dimensions of a stored original."""

    path: str
    width: int
    height: int


def _read_dimensions(source: Path) -> tuple[int, int]:
    try:
        with Image.open(source) as image:
            # Decode fully; truncated bodies pass a header-only open.
            image.load()
            return image.size
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as exc:
        raise DecodeError(f"The image could not be read; the file may be corrupt ({exc})") from exc


def _transcode_heic(source: Path, quality: int) -> tuple[bytes, int, int]:
    if not heif_codec_available():
        raise CodecUnavailableError(
            "HEIC/HEIF images are not supported on this server; install the libheif codec "
            "(pillow-heif) to accept them"
        )
    try:
        with Image.open(source) as image:
            image.load()
            width, height = image.size
            rgb = image.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, RuntimeError) as exc:
        raise DecodeError(f"The HEIC image could not be decoded ({exc})") from exc

    if width <= 0 or height <= 0:
        raise DecodeError(f"Decoded HEIC image has invalid dimensions {width}x{height}")

    buffer = io.BytesIO()
    rgb.save(buffer, "JPEG", quality=quality)
    return buffer.getvalue(), width, height


def store_original(
    storage: LocalStorage,
    source_path: str | Path,
    image_format: ImageFormat,
    *,
    heic_quality: int = DEFAULT_HEIC_QUALITY,
) -> StoredOriginal:
    """Store the uploaded file as the photo's original.

    JPEG, PNG and GIF bytes are copied verbatim, embedded metadata included.
    HEIC/HEIF is decoded and re-encoded as JPEG.

    Args:
        storage: Destination storage.
        source_path: Temporary file holding the upload; left untouched.
        image_format: Result of classifying the upload.
        heic_quality: JPEG quality used when transcoding HEIC.

    Returns:
        The relative storage path and the stored image's dimensions.

    Raises:
        CodecUnavailableError: HEIC input without a registered HEIF codec.
        DecodeError: The file cannot be decoded or has no usable dimensions.
        StorageError: The source could not be read or the destination written.
    """
    source = Path(source_path)

    if image_format is ImageFormat.HEIC:
        data, width, height = _transcode_heic(source, heic_quality)
        destination = random_path(ORIGINALS_AREA, "jpg")
        logger.info("Transcoded HEIC upload to JPEG (%dx%d)", width, height)
    else:
        width, height = _read_dimensions(source)
        if width <= 0 or height <= 0:
            raise DecodeError(f"Image has invalid dimensions {width}x{height}")
        try:
            data = source.read_bytes()
        except OSError as exc:
            raise StorageError(f"Could not read uploaded file: {exc}") from exc
        destination = random_path(ORIGINALS_AREA, image_format.extension)

    storage.make_directory(ORIGINALS_AREA)
    storage.store(destination, data)
    return StoredOriginal(path=destination, width=width, height=height)
