"""Region color sampling.

Estimates the dominant color of a structural region of a photo (for example
the existing hair at the sides of a head) while rejecting pixels that are
likely background, specular highlight or skin.

The estimator has two outlier-rejection stages:

1. **Brightness band** — a pixel is kept only if its brightness
   ``(r + g + b) / 3`` lies strictly inside ``(brightness_min,
   brightness_max)``.  This drops deep shadow and blown-out background.
2. **Quartile trim** — the kept pixels are sorted by brightness and the
   lowest and highest quarters are discarded.  The middle half is averaged
   per channel.

Fewer than ``min_samples`` kept pixels means "color unknown": the sampling
functions return ``None`` instead of raising, and callers fall back to a
pass-through policy.

Usage
-----
::

    from hairblend.core.sampler import DEFAULT_REFERENCE_REGIONS, sample_region_color

    color = sample_region_color(photo, DEFAULT_REFERENCE_REGIONS, 30, 200)
    if color is None:
        ...  # skip color correction
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from hairblend.core.geometry import EllipseParams, RegionSpec, round_half_up
from hairblend.core.raster import RasterImage

logger = logging.getLogger(__name__)

DEFAULT_MIN_SAMPLES = 30

# Sides of the head, clear of the crown that generation replaces.
DEFAULT_REFERENCE_REGIONS: tuple[RegionSpec, ...] = (
    RegionSpec(0.05, 0.15, 0.25, 0.45),
    RegionSpec(0.75, 0.15, 0.95, 0.45),
)


@dataclass(frozen=True)
class ColorSample:
    """An RGB triple with each channel in ``[0, 255]``."""

    r: int
    g: int
    b: int

    @property
    def brightness(self) -> float:
        return (self.r + self.g + self.b) / 3

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)


def robust_average(
    pixels: np.ndarray,
    brightness_min: float,
    brightness_max: float,
    min_samples: int = DEFAULT_MIN_SAMPLES,
) -> ColorSample | None:
    """Band-filter and quartile-trim ``pixels`` then average them.

    Args:
        pixels: ``(N, 3)`` array of RGB samples in scan order.
        brightness_min: Exclusive lower brightness bound.
        brightness_max: Exclusive upper brightness bound.
        min_samples: Minimum number of pixels that must pass the band.

    Returns:
        The trimmed mean color, or ``None`` if too few pixels qualified.
    """
    samples = np.asarray(pixels, dtype=np.float64).reshape(-1, 3)
    brightness = samples.sum(axis=1) / 3.0
    keep = (brightness > brightness_min) & (brightness < brightness_max)
    kept = samples[keep]
    count = len(kept)

    if count < max(min_samples, 1):
        logger.debug(
            "Insufficient sample data: %d of %d pixels in band (%.1f, %.1f), need %d",
            count,
            len(samples),
            brightness_min,
            brightness_max,
            min_samples,
        )
        return None

    # Stable sort keeps scan order among equal brightness.
    order = np.argsort(brightness[keep], kind="stable")
    quarter = count // 4
    middle = kept[order[quarter : count - quarter]]
    mean = middle.mean(axis=0)

    return ColorSample(
        r=min(max(round_half_up(mean[0]), 0), 255),
        g=min(max(round_half_up(mean[1]), 0), 255),
        b=min(max(round_half_up(mean[2]), 0), 255),
    )


def sample_region_color(
    image: RasterImage,
    regions: Sequence[RegionSpec],
    brightness_min: float,
    brightness_max: float,
    min_samples: int = DEFAULT_MIN_SAMPLES,
) -> ColorSample | None:
    """Estimate the dominant color inside one or more fractional regions.

    Each region is resolved against the image size with round-half-up.
    Empty or out-of-range regions contribute no pixels.  Overlapping
    regions contribute their shared pixels once per region.

    Returns:
        A :class:`ColorSample`, or ``None`` when fewer than ``min_samples``
        pixels fall strictly inside the brightness band.
    """
    chunks: list[np.ndarray] = []
    for region in regions:
        x0, y0, x1, y1 = region.to_pixel_bounds(image.width, image.height)
        if x1 <= x0 or y1 <= y0:
            logger.debug("Region %s is empty at %dx%d", region, image.width, image.height)
            continue
        chunks.append(image.pixels[y0:y1, x0:x1].reshape(-1, 3))

    if not chunks:
        return None

    return robust_average(np.concatenate(chunks), brightness_min, brightness_max, min_samples)


def sample_ellipse_color(
    image: RasterImage,
    ellipse: EllipseParams,
    brightness_min: float,
    brightness_max: float,
    min_samples: int = DEFAULT_MIN_SAMPLES,
) -> ColorSample | None:
    """Estimate the dominant color of the pixels inside ``ellipse``.

    Uses the same estimator as :func:`sample_region_color`, restricted to
    pixels whose normalized elliptical distance is at most 1.
    """
    inside = ellipse.distance_field(image.width, image.height) <= 1.0
    if not inside.any():
        return None
    return robust_average(image.pixels[inside], brightness_min, brightness_max, min_samples)
