"""Hairblend - hair restoration previews with local elliptical blending."""

__version__ = "0.1.0"

from hairblend.core.compositor import ColorCorrection, composite_ellipse
from hairblend.core.config import HairblendConfig, config
from hairblend.core.geometry import EllipseParams, RegionSpec
from hairblend.core.raster import RasterImage
from hairblend.core.sampler import ColorSample, sample_region_color

__all__ = [
    "ColorCorrection",
    "ColorSample",
    "EllipseParams",
    "HairblendConfig",
    "RasterImage",
    "RegionSpec",
    "composite_ellipse",
    "config",
    "sample_region_color",
]
