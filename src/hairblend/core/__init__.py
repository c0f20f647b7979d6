"""Core image processing for Hairblend.

This module provides the local, pure-computation pieces of the service and
the thin integration layer around them:

- **RasterImage**: Immutable RGB pixel buffer (numpy-backed, Pillow I/O)
- **Region Color Sampler**: Robust dominant-color estimate over fractional regions
- **Elliptical Alpha Compositor**: Soft-edged raised-cosine blend with optional
  per-channel color correction
- **BlendPipeline**: Resize, sample, correct and composite in one call
- **PredictionClient**: Submit/poll/fetch against the hosted generation service
- **HairblendConfig**: Configuration management using Pydantic Settings

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with HAIRBLEND_ in .env files

2. **Pixel Layer** (raster.py, geometry.py, sampler.py, compositor.py):
   - Pure functions over in-memory buffers, no I/O, no shared state
   - Safe to call concurrently as long as each call owns its images

3. **Orchestration Layer** (pipeline.py):
   - Composes the sampler and compositor the way the API uses them

4. **Integration Layer** (prediction.py):
   - HTTP client for the hosted prediction service (httpx)

Usage Example
-------------
    from hairblend.core import BlendPipeline, RasterImage, config

    pipeline = BlendPipeline(config)
    result = pipeline.blend(photo, generated)
    png = result.image.to_bytes("PNG")
"""

from hairblend.core.compositor import (
    ColorCorrection,
    DimensionMismatch,
    blend_weight,
    composite_ellipse,
    derive_color_correction,
)
from hairblend.core.config import HairblendConfig, config
from hairblend.core.geometry import EllipseParams, RegionSpec
from hairblend.core.pipeline import BlendPipeline, BlendResult
from hairblend.core.raster import ImageDecodeError, RasterImage
from hairblend.core.sampler import (
    ColorSample,
    sample_ellipse_color,
    sample_region_color,
)

__all__ = [
    "BlendPipeline",
    "BlendResult",
    "ColorCorrection",
    "ColorSample",
    "DimensionMismatch",
    "EllipseParams",
    "HairblendConfig",
    "ImageDecodeError",
    "RasterImage",
    "RegionSpec",
    "blend_weight",
    "composite_ellipse",
    "config",
    "derive_color_correction",
    "sample_ellipse_color",
    "sample_region_color",
]
