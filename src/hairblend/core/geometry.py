"""Resolution-independent regions and blend ellipses.

Both shapes are described relative to the image they are applied to, so one
configuration works for any upload resolution:

- :class:`RegionSpec` is a rectangle in *fractions* of width/height.
- :class:`EllipseParams` is an ellipse in pixels, usually built from
  fractions via :meth:`EllipseParams.from_fractions`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

import numpy as np


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class RegionSpec:
    """Rectangle expressed as fractions of the image dimensions.

    Attributes:
        left, top: Upper-left corner (inclusive).
        right, bottom: Lower-right corner (exclusive).
    """

    left: float
    top: float
    right: float
    bottom: float

    def to_pixel_bounds(self, width: int, height: int) -> tuple[int, int, int, int]:
        """Resolve to ``(x0, y0, x1, y1)`` pixel bounds clamped to the image.

        Out-of-range or inverted fractions collapse to an empty box rather
        than raising; callers see zero pixels.
        """
        x0 = min(max(round_half_up(self.left * width), 0), width)
        x1 = min(max(round_half_up(self.right * width), 0), width)
        y0 = min(max(round_half_up(self.top * height), 0), height)
        y1 = min(max(round_half_up(self.bottom * height), 0), height)
        return x0, y0, max(x0, x1), max(y0, y1)

    def is_empty(self, width: int, height: int) -> bool:
        x0, y0, x1, y1 = self.to_pixel_bounds(width, height)
        return x1 <= x0 or y1 <= y0


@dataclass(frozen=True)
class EllipseParams:
    """Blend ellipse in pixel coordinates.

    Attributes:
        cx, cy: Center in pixels.
        rx, ry: Radii in pixels, both strictly positive.
        fade_width: Half-width of the soft transition band as a fraction of
            the normalized radius.  The blend weight is 1 for
            ``d <= 1 - fade_width`` and 0 for ``d >= 1 + fade_width``.
    """

    cx: float
    cy: float
    rx: float
    ry: float
    fade_width: float = 0.35

    def __post_init__(self) -> None:
        if self.rx <= 0 or self.ry <= 0:
            raise ValueError(f"Ellipse radii must be positive, got rx={self.rx}, ry={self.ry}")
        if not 0.0 <= self.fade_width <= 1.0:
            raise ValueError(f"fade_width must be within [0, 1], got {self.fade_width}")

    @classmethod
    def from_fractions(
        cls,
        width: int,
        height: int,
        *,
        center_x: float = 0.5,
        center_y: float = 0.2,
        radius_x: float = 0.38,
        radius_y: float = 0.23,
        fade_width: float = 0.35,
    ) -> EllipseParams:
        """Build an ellipse scaled to a ``width`` x ``height`` image.

        The defaults place the ellipse over the top of a head in a typical
        portrait: centered horizontally, in the upper fifth vertically.
        """
        return cls(
            cx=center_x * width,
            cy=center_y * height,
            rx=radius_x * width,
            ry=radius_y * height,
            fade_width=fade_width,
        )

    def scaled(self, factor: float) -> EllipseParams:
        """Concentric ellipse with both radii multiplied by ``factor``."""
        return replace(self, rx=self.rx * factor, ry=self.ry * factor)

    def distance(self, x: float, y: float) -> float:
        """Normalized elliptical distance of a single point."""
        return math.sqrt(((x - self.cx) / self.rx) ** 2 + ((y - self.cy) / self.ry) ** 2)

    def distance_field(self, width: int, height: int) -> np.ndarray:
        """Normalized elliptical distance for every pixel, shape ``(height, width)``.

        Pixel ``(x, y)`` is evaluated at its integer coordinates.
        """
        xs = (np.arange(width, dtype=np.float64) - self.cx) / self.rx
        ys = (np.arange(height, dtype=np.float64) - self.cy) / self.ry
        return np.sqrt(xs[np.newaxis, :] ** 2 + ys[:, np.newaxis] ** 2)
