"""Rendering of the square JPEG thumbnail shown in the album."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from family_album.services.crop import CropBox, CropRequest
from family_album.services.errors import DecodeError
from family_album.services.storage import THUMBNAILS_AREA, LocalStorage, random_path

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = 800
THUMBNAIL_QUALITY = 85


@dataclass(frozen=True)
class RenderedThumbnail:
    """Stored thumbnail path and the source rectangle it was cut from."""

    path: str
    box: CropBox


def apply_orientation(image: Image.Image) -> Image.Image:
    """Return an upright copy of ``image`` with its orientation tag removed.

    All eight EXIF orientations are honoured; images without the tag come
    back unchanged.
    """
    return ImageOps.exif_transpose(image)


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        flattened = Image.new("RGB", rgba.size, (255, 255, 255))
        flattened.paste(rgba, mask=rgba.getchannel("A"))
        image = flattened
    else:
        image = image.convert("RGB")

    # Only pixel data reaches the encoder.
    image.info = {}
    buffer = io.BytesIO()
    image.save(buffer, "JPEG", quality=quality)
    return buffer.getvalue()


def render_thumbnail(
    storage: LocalStorage,
    original_path: str,
    request: CropRequest,
    *,
    size: int = THUMBNAIL_SIZE,
    quality: int = THUMBNAIL_QUALITY,
) -> RenderedThumbnail:
    """Cut, resize and store a square thumbnail from a stored original.

    The crop is resolved against the upright image, so coordinates refer to
    what the user saw in the cropper. Nothing is written unless the whole
    image has been processed.

    Raises:
        DecodeError: The original cannot be decoded.
        StorageError: The original is missing or the thumbnail cannot be written.
    """
    source = storage.absolute_path(original_path)
    try:
        with Image.open(source) as image:
            image.load()
            upright = apply_orientation(image)
            box = request.resolve(upright.width, upright.height)
            square = upright.crop(box.as_box())
            thumbnail = square.resize((size, size), Image.Resampling.LANCZOS)
    except FileNotFoundError as exc:
        raise DecodeError(f"Original image is missing: {original_path}") from exc
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as exc:
        raise DecodeError(f"Unsupported or corrupt image: {exc}") from exc

    data = _encode_jpeg(thumbnail, quality)

    destination = random_path(THUMBNAILS_AREA, "jpg")
    storage.make_directory(THUMBNAILS_AREA)
    storage.store(destination, data)
    logger.info(
        "Stored thumbnail %s from %s (x=%d, y=%d, size=%d)",
        destination,
        original_path,
        box.x,
        box.y,
        box.size,
    )
    return RenderedThumbnail(path=destination, box=box)
