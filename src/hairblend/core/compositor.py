"""Elliptical alpha compositing with optional color correction.

Merges a *foreground* image (the externally generated replacement) onto a
*background* image (the original photo) so that an elliptical region is
dominated by the foreground, the exterior keeps the background, and the
transition between them has no visible seam.

Blend Weight
------------
For every pixel the normalized elliptical distance
``d = sqrt(((x - cx) / rx)^2 + ((y - cy) / ry)^2)`` is mapped to a
foreground weight::

    d <= 1 - fade                 -> 1.0
    d >= 1 + fade                 -> 0.0
    otherwise t = (d - (1 - fade)) / (2 * fade)
              w = 0.5 + 0.5 * cos(pi * t)

The raised-cosine taper has zero slope at both ends of the band, so there
is no visible ring where the ramp starts or stops.

Color Correction
----------------
A :class:`ColorCorrection` holds per-channel multiplicative ratios.  It is
derived from two color samples, the reference hue taken from the
background and the current hue of the foreground's ellipse core, and each
ratio is clamped to a bounded range.  Only mid-tone foreground pixels are
re-tinted; very dark or very bright pixels pass through unchanged.

Output channels are ``round(fg * w + bg * (1 - w))`` with halves rounded
up, clipped to ``[0, 255]``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from hairblend.core.geometry import EllipseParams, RegionSpec
from hairblend.core.raster import RasterImage
from hairblend.core.sampler import (
    DEFAULT_MIN_SAMPLES,
    DEFAULT_REFERENCE_REGIONS,
    ColorSample,
    sample_ellipse_color,
    sample_region_color,
)

logger = logging.getLogger(__name__)

DEFAULT_CORRECTION_BOUNDS: tuple[float, float] = (0.6, 1.5)
SUBTLE_CORRECTION_BOUNDS: tuple[float, float] = (0.8, 1.2)
DEFAULT_MIDTONE_BAND: tuple[float, float] = (20.0, 220.0)


class DimensionMismatch(ValueError):
    """Foreground and background sizes differ at composite time."""


def blend_weight(d, fade_width: float) -> np.ndarray:
    """Foreground weight for normalized elliptical distance(s) ``d``.

    Accepts a scalar or an array and always returns a float array of the
    same shape.  A ``fade_width`` of 0 gives a hard edge at ``d == 1``.
    """
    d = np.asarray(d, dtype=np.float64)
    if fade_width <= 0.0:
        return np.where(d <= 1.0, 1.0, 0.0)

    inner = 1.0 - fade_width
    outer = 1.0 + fade_width
    t = np.clip((d - inner) / (2.0 * fade_width), 0.0, 1.0)
    weight = 0.5 + 0.5 * np.cos(np.pi * t)
    weight = np.where(d <= inner, 1.0, weight)
    return np.where(d >= outer, 0.0, weight)


@dataclass(frozen=True)
class ColorCorrection:
    """Per-channel multiplicative re-tinting ratios."""

    r: float
    g: float
    b: float

    @classmethod
    def identity(cls) -> ColorCorrection:
        return cls(1.0, 1.0, 1.0)

    @classmethod
    def derive(
        cls,
        reference: ColorSample,
        current: ColorSample,
        bounds: tuple[float, float] = DEFAULT_CORRECTION_BOUNDS,
    ) -> ColorCorrection:
        """Ratios that move ``current`` toward ``reference``.

        Each ratio is ``reference / max(1, current)`` clamped to ``bounds``.
        """
        low, high = bounds
        if low > high:
            raise ValueError(f"Invalid correction bounds {bounds}")

        def ratio(ref: int, cur: int) -> float:
            return min(max(ref / max(1, cur), low), high)

        return cls(
            r=ratio(reference.r, current.r),
            g=ratio(reference.g, current.g),
            b=ratio(reference.b, current.b),
        )

    @property
    def ratios(self) -> tuple[float, float, float]:
        return (self.r, self.g, self.b)

    def apply(
        self,
        pixels: np.ndarray,
        midtone_band: tuple[float, float] = DEFAULT_MIDTONE_BAND,
    ) -> np.ndarray:
        """Return float pixels with mid-tones re-tinted.

        Pixels whose brightness lies outside the inclusive ``midtone_band``
        are returned unchanged.  Corrected channels are clipped to
        ``[0, 255]``.
        """
        pixels = np.asarray(pixels, dtype=np.float64)
        low, high = midtone_band
        brightness = pixels.sum(axis=-1) / 3.0
        midtone = ((brightness >= low) & (brightness <= high))[..., np.newaxis]
        corrected = np.clip(pixels * np.asarray(self.ratios, dtype=np.float64), 0.0, 255.0)
        return np.where(midtone, corrected, pixels)


def derive_color_correction(
    background: RasterImage,
    foreground: RasterImage,
    ellipse: EllipseParams,
    *,
    regions: Sequence[RegionSpec] = DEFAULT_REFERENCE_REGIONS,
    brightness_min: float = 30.0,
    brightness_max: float = 200.0,
    min_samples: int = DEFAULT_MIN_SAMPLES,
    inner_scale: float = 0.6,
    bounds: tuple[float, float] = DEFAULT_CORRECTION_BOUNDS,
    reference: ColorSample | None = None,
) -> ColorCorrection | None:
    """Derive a correction that pulls the foreground toward the background hue.

    The reference color is sampled from ``regions`` of the background (or
    taken from ``reference`` when already known).  The current color is
    sampled from the foreground inside a concentric ellipse whose radii are
    ``inner_scale`` times those of ``ellipse``.

    Returns:
        The clamped correction, or ``None`` when either sample lacks data.
    """
    if reference is None:
        reference = sample_region_color(
            background, regions, brightness_min, brightness_max, min_samples
        )
    if reference is None:
        logger.info("No reference color in background regions; skipping correction")
        return None

    current = sample_ellipse_color(
        foreground, ellipse.scaled(inner_scale), brightness_min, brightness_max, min_samples
    )
    if current is None:
        logger.info("No usable color in generated ellipse core; skipping correction")
        return None

    correction = ColorCorrection.derive(reference, current, bounds)
    logger.debug(
        "Correction %s from reference %s and current %s",
        correction.ratios,
        reference.as_tuple(),
        current.as_tuple(),
    )
    return correction


def composite_ellipse(
    background: RasterImage,
    foreground: RasterImage,
    ellipse: EllipseParams,
    correction: ColorCorrection | None = None,
    midtone_band: tuple[float, float] = DEFAULT_MIDTONE_BAND,
) -> RasterImage:
    """Blend ``foreground`` onto ``background`` through a soft ellipse.

    Args:
        background: The original photo.
        foreground: The generated image, already resized to match.
        ellipse: Blend ellipse in pixel coordinates.
        correction: Optional re-tinting applied to foreground mid-tones.
        midtone_band: Inclusive brightness band eligible for correction.

    Returns:
        A new image of the same size.  Pixels at ``d >= 1 + fade_width`` are
        the background pixels exactly; pixels at ``d <= 1 - fade_width`` are
        the (possibly corrected) foreground pixels.

    Raises:
        DimensionMismatch: If the two images differ in size.
    """
    if background.size != foreground.size:
        raise DimensionMismatch(
            f"Foreground {foreground.size} does not match background {background.size}; "
            "resize before compositing"
        )

    distance = ellipse.distance_field(background.width, background.height)
    weight = blend_weight(distance, ellipse.fade_width)[..., np.newaxis]

    fg = foreground.pixels.astype(np.float64)
    if correction is not None:
        fg = correction.apply(fg, midtone_band)
    bg = background.pixels.astype(np.float64)

    blended = fg * weight + bg * (1.0 - weight)
    out = np.clip(np.floor(blended + 0.5), 0, 255).astype(np.uint8)
    return RasterImage(out)
