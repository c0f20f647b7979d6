"""Blend pipeline: sampler + resize + correction + compositor."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from hairblend.core.compositor import ColorCorrection, composite_ellipse, derive_color_correction
from hairblend.core.config import HairblendConfig
from hairblend.core.config import config as default_config
from hairblend.core.geometry import EllipseParams
from hairblend.core.raster import RasterImage
from hairblend.core.sampler import ColorSample, sample_region_color

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlendResult:
    """Output of :meth:`BlendPipeline.blend`.

    Attributes:
        image: The composited image, same size as the input photo.
        ellipse: Ellipse used for blending, in photo pixel coordinates.
        reference_color: Hair color sampled from the photo, if any.
        correction: Correction applied to the generated pixels, if any.
    """

    image: RasterImage
    ellipse: EllipseParams
    reference_color: Optional[ColorSample] = None
    correction: Optional[ColorCorrection] = None

    @property
    def color_corrected(self) -> bool:
        return self.correction is not None


class BlendPipeline:
    """Composite a generated image back onto the photo it was made from."""

    def __init__(self, config: Optional[HairblendConfig] = None):
        """
        Initialize the blend pipeline.

        Args:
            config: Configuration object. If None, uses global default config.
        """
        self.config = config or default_config

    def ellipse_for(self, image: RasterImage) -> EllipseParams:
        """Blend ellipse for an image of this size, from the configured fractions."""
        return EllipseParams.from_fractions(
            image.width,
            image.height,
            center_x=self.config.ellipse_center_x,
            center_y=self.config.ellipse_center_y,
            radius_x=self.config.ellipse_radius_x,
            radius_y=self.config.ellipse_radius_y,
            fade_width=self.config.fade_width,
        )

    def sample_reference(self, photo: RasterImage) -> Optional[ColorSample]:
        """Sample the existing hair color inside the configured reference regions."""
        return sample_region_color(
            photo,
            self.config.reference_region_specs,
            self.config.brightness_min,
            self.config.brightness_max,
            self.config.min_samples,
        )

    def blend(
        self,
        photo: RasterImage,
        generated: RasterImage,
        color_correct: Optional[bool] = None,
    ) -> BlendResult:
        """
        Blend ``generated`` onto ``photo``.

        Args:
            photo: Original (normalized) photo, used as the background
            generated: Image returned by the prediction service
            color_correct: Override config.color_correct for this call

        Returns:
            BlendResult with the composite and the correction that was used
        """
        if color_correct is None:
            color_correct = self.config.color_correct

        # Stretch-to-fit: both images frame the same head.
        if generated.size != photo.size:
            logger.info("Resizing generated image from %s to %s", generated.size, photo.size)
            generated = generated.resized(photo.width, photo.height, resample="bilinear")

        ellipse = self.ellipse_for(photo)
        reference = self.sample_reference(photo)

        correction = None
        if color_correct and reference is not None:
            correction = derive_color_correction(
                photo,
                generated,
                ellipse,
                regions=self.config.reference_region_specs,
                brightness_min=self.config.brightness_min,
                brightness_max=self.config.brightness_max,
                min_samples=self.config.min_samples,
                inner_scale=self.config.inner_sample_scale,
                bounds=self.config.correction_bounds,
                reference=reference,
            )
        elif color_correct:
            logger.info("Reference color unknown, blending without correction")

        image = composite_ellipse(
            photo,
            generated,
            ellipse,
            correction=correction,
            midtone_band=self.config.midtone_band,
        )
        logger.info(
            "Blended %dx%d image (correction=%s)",
            photo.width,
            photo.height,
            correction.ratios if correction else None,
        )
        return BlendResult(
            image=image,
            ellipse=ellipse,
            reference_color=reference,
            correction=correction,
        )

    def blend_and_save(
        self,
        photo: RasterImage,
        generated: RasterImage,
        color_correct: Optional[bool] = None,
        output_path: Optional[Path] = None,
    ) -> tuple[BlendResult, Path]:
        """
        Blend and save the composite as PNG.

        Args:
            photo: Original photo
            generated: Generated image
            color_correct: Override config.color_correct for this call
            output_path: Custom output path (if None, auto-generates in outputs_dir)

        Returns:
            Tuple of (blend result, save path)
        """
        result = self.blend(photo, generated, color_correct=color_correct)

        if output_path is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            output_path = self.config.outputs_dir / f"hairblend_{timestamp}.png"

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(result.image.to_bytes("PNG"))
        logger.info("Composite saved to: %s", output_path)

        return result, output_path
