"""Classification of uploaded files into the raster formats the album accepts.

Client-reported file names and MIME types are unreliable (phones happily send
HEIC photos named ``IMG_0001.JPG``), so HEIC detection ORs three signals
taken from the upload itself: the file extension, the MIME type sniffed from
the leading bytes, and the format tag Pillow reports after opening the file.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

logger = logging.getLogger(__name__)

register_heif_opener()

HEIC_EXTENSIONS = frozenset({"heic", "heif"})
HEIC_MIME_TYPES = frozenset({"image/heic", "image/heif"})
HEIC_FORMAT_TAGS = frozenset({"HEIC", "HEIF"})

# ISO-BMFF major brands used by HEIC/HEIF stills and sequences.
_HEIC_BRANDS = frozenset({b"heic", b"heix", b"hevc", b"hevx", b"heim", b"heis", b"hevm", b"hevs"})
_HEIF_BRANDS = frozenset({b"mif1", b"msf1"})
_SNIFF_BYTES = 32


class ImageFormat(enum.Enum):
    """Formats recognised by the ingestion pipeline."""

    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    HEIC = "heic"
    UNKNOWN = "unknown"

    @property
    def extension(self) -> str:
        """Return the file extension an original of this format is stored under.

        HEIC is transcoded on ingestion and unknown formats default to JPEG.
        """
        return _EXTENSIONS.get(self, "jpg")


_EXTENSIONS = {
    ImageFormat.JPEG: "jpg",
    ImageFormat.PNG: "png",
    ImageFormat.GIF: "gif",
}

_PILLOW_FORMATS = {
    "JPEG": ImageFormat.JPEG,
    "MPO": ImageFormat.JPEG,
    "PNG": ImageFormat.PNG,
    "GIF": ImageFormat.GIF,
    "HEIF": ImageFormat.HEIC,
    "HEIC": ImageFormat.HEIC,
}

_MIME_FORMATS = {
    "image/jpeg": ImageFormat.JPEG,
    "image/png": ImageFormat.PNG,
    "image/gif": ImageFormat.GIF,
    "image/heic": ImageFormat.HEIC,
    "image/heif": ImageFormat.HEIC,
}


def heif_codec_available() -> bool:
    """Return True when Pillow has a HEIF decoder registered."""
    return "HEIF" in Image.OPEN


def sniff_mime_type(path: str | Path) -> str | None:
    """Detect a MIME type from the leading bytes of the file."""
    try:
        with open(path, "rb") as handle:
            head = handle.read(_SNIFF_BYTES)
    except OSError:
        return None

    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if head[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if head[4:8] == b"ftyp":
        brand = head[8:12]
        if brand in _HEIC_BRANDS:
            return "image/heic"
        if brand in _HEIF_BRANDS:
            return "image/heif"
    return None


def pillow_format(path: str | Path) -> str | None:
    """Return the format tag Pillow assigns to the file, or None if it cannot open it."""
    try:
        with Image.open(path) as image:
            return image.format
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as exc:
        logger.debug("Pillow could not identify %s: %s", path, exc)
        return None


def _extension(filename: str | None) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def is_heic(path: str | Path, filename: str | None = None) -> bool:
    """Return True if any signal marks the file as HEIC/HEIF.

    The file is only read, never moved or modified. Files Pillow cannot open
    simply contribute a negative format-tag signal. The client-reported MIME
    type is not consulted; the MIME signal comes from the file's own bytes.
    """
    if _extension(filename) in HEIC_EXTENSIONS:
        return True

    detected = sniff_mime_type(path)
    if detected in HEIC_MIME_TYPES:
        return True

    tag = pillow_format(path)
    return tag is not None and tag.upper() in HEIC_FORMAT_TAGS


def classify(path: str | Path, filename: str | None = None) -> ImageFormat:
    """Classify an uploaded file once from all available signals."""
    if is_heic(path, filename):
        return ImageFormat.HEIC

    tag = pillow_format(path)
    if tag is not None and tag.upper() in _PILLOW_FORMATS:
        return _PILLOW_FORMATS[tag.upper()]

    detected = sniff_mime_type(path)
    if detected is not None:
        return _MIME_FORMATS[detected]
    return ImageFormat.UNKNOWN
