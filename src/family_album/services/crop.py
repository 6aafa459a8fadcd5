"""Square crop geometry.

Named anchors only steer the long axis of a non-square image; off-centre
crops along both axes need explicit coordinates.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Anchor(str, enum.Enum):
    """Named crop bias resolved against the image's long axis."""

    CENTER = "center"
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class CropBox:
    """Square source rectangle in image pixel coordinates."""

    x: int
    y: int
    size: int

    def as_box(self) -> tuple[int, int, int, int]:
        """Return the (left, upper, right, lower) tuple Pillow expects."""
        return (self.x, self.y, self.x + self.size, self.y + self.size)


def resolve_anchor(width: int, height: int, anchor: Anchor | str = Anchor.CENTER) -> CropBox:
    """Return the largest centred square, shifted along the long axis by ``anchor``."""
    anchor = Anchor(anchor)
    square_size = min(width, height)
    x = (width - square_size) // 2
    y = (height - square_size) // 2

    if width > height:
        if anchor is Anchor.LEFT:
            x = 0
        elif anchor is Anchor.RIGHT:
            x = width - square_size
    elif height > width:
        if anchor is Anchor.TOP:
            y = 0
        elif anchor is Anchor.BOTTOM:
            y = height - square_size

    return CropBox(x=x, y=y, size=square_size)


def clamp_coordinates(width: int, height: int, x: int, y: int, size: int) -> CropBox:
    """Clamp a caller-supplied square so it always lies inside the image.

    Oversized requests are shrunk rather than rejected.
    """
    size = max(1, size)
    x = max(0, min(x, width - 1))
    y = max(0, min(y, height - 1))
    size = min(size, width - x, height - y)
    return CropBox(x=x, y=y, size=size)


@dataclass(frozen=True)
class CropRequest:
    """A crop chosen either by anchor or by explicit coordinates."""

    anchor: Anchor = Anchor.CENTER
    x: int | None = None
    y: int | None = None
    size: int | None = None

    @classmethod
    def from_form(
        cls,
        anchor: Anchor | str | None = None,
        x: int | None = None,
        y: int | None = None,
        size: int | None = None,
    ) -> CropRequest:
        """Build a request; coordinates win when all three are present."""
        if x is not None and y is not None and size is not None:
            return cls(x=x, y=y, size=size)
        return cls(anchor=Anchor(anchor) if anchor else Anchor.CENTER)

    @property
    def uses_coordinates(self) -> bool:
        return self.x is not None and self.y is not None and self.size is not None

    def resolve(self, width: int, height: int) -> CropBox:
        """Resolve against an image of the given dimensions."""
        if self.uses_coordinates:
            return clamp_coordinates(width, height, self.x, self.y, self.size)  # type: ignore[arg-type]
        return resolve_anchor(width, height, self.anchor)
