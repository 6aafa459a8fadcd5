"""Best-effort capture timestamp extraction for uploaded images.

Extraction runs an ordered list of strategies and keeps the first result.
Each strategy swallows its own decoding errors and returns None, so the
chain as a whole can never fail an upload.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pillow_heif
from PIL import ExifTags, Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

TAKEN_AT_FORMAT = "%Y-%m-%d %H:%M:%S"

# Tried in order by the deep inspection strategy.
ALTERNATE_DATE_TAGS: tuple[ExifTags.Base, ...] = (
    ExifTags.Base.DateTimeOriginal,
    ExifTags.Base.DateTimeDigitized,
    ExifTags.Base.DateTime,
)

_EXIF_DATE_FORMATS = (
    "%Y:%m:%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y:%m:%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
)

_READ_ERRORS = (
    UnidentifiedImageError,
    OSError,
    RuntimeError,
    ValueError,
    SyntaxError,
    KeyError,
    TypeError,
)

Extractor = Callable[[Path], datetime | None]


def parse_exif_datetime(value: object) -> datetime | None:
    """Parse an EXIF date string such as ``2023:06:15 14:30:00``."""
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    if not isinstance(value, str):
        return None
    text = value.strip().strip("\x00").strip()
    if not text:
        return None
    # Sub-second and timezone suffixes are not part of the stored representation.
    text = text[:19]
    for fmt in _EXIF_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _lookup(exif: Image.Exif, tag: int) -> object | None:
    value = exif.get_ifd(ExifTags.IFD.Exif).get(tag)
    if value is None:
        value = exif.get(tag)
    return value


def standard_capture_time(path: Path) -> datetime | None:
    """Read ``DateTimeOriginal`` through Pillow's regular Exif reader."""
    try:
        with Image.open(path) as image:
            exif = image.getexif()
            return parse_exif_datetime(
                exif.get_ifd(ExifTags.IFD.Exif).get(ExifTags.Base.DateTimeOriginal)
            )
    except _READ_ERRORS as exc:
        logger.debug("Standard Exif read failed for %s: %s", path, exc)
        return None


def _embedded_exif(path: Path) -> Image.Exif | None:
    if pillow_heif.is_supported(str(path)):
        heif_file = pillow_heif.open_heif(str(path))
        raw = heif_file.info.get("exif")
        if not raw:
            return None
        exif = Image.Exif()
        exif.load(raw)
        return exif
    with Image.open(path) as image:
        return image.getexif()


def alternate_capture_time(path: Path) -> datetime | None:
    """Try the alternate date tags, reading HEIF containers directly."""
    try:
        exif = _embedded_exif(path)
        if exif is None:
            return None
        for tag in ALTERNATE_DATE_TAGS:
            parsed = parse_exif_datetime(_lookup(exif, tag))
            if parsed is not None:
                return parsed
    except _READ_ERRORS as exc:
        logger.debug("Deep Exif inspection failed for %s: %s", path, exc)
    return None


def file_modified_time(path: Path) -> datetime | None:
    """Fall back to the file's last-modified time."""
    try:
        return datetime.fromtimestamp(os.path.getmtime(path))
    except OSError as exc:
        logger.debug("Could not stat %s: %s", path, exc)
        return None


EXTRACTORS: tuple[Extractor, ...] = (
    standard_capture_time,
    alternate_capture_time,
    file_modified_time,
)


def extract_taken_at(
    path: str | Path,
    extractors: tuple[Extractor, ...] = EXTRACTORS,
) -> str | None:
    """Return the capture timestamp formatted as ``YYYY-MM-DD HH:MM:SS``.

    Only returns None when the file does not exist and every strategy came
    up empty.
    """
    source = Path(path)
    for extractor in extractors:
        taken_at = extractor(source)
        if taken_at is not None:
            logger.debug("Capture time for %s from %s", source.name, extractor.__name__)
            return taken_at.strftime(TAKEN_AT_FORMAT)
    return None


def parse_taken_at(value: str | None) -> datetime | None:
    """Convert an extracted timestamp string back to a datetime."""
    if value is None:
        return None
    return datetime.strptime(value, TAKEN_AT_FORMAT)
