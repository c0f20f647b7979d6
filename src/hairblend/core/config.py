"""Configuration management for Hairblend.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the HAIRBLEND_ prefix,
allowing the sampler thresholds, blend geometry and prediction-service settings to
be tuned without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (HAIRBLEND_* prefix)
2. .env file in the project root
3. Default values defined in HairblendConfig

Example .env file:
    HAIRBLEND_REPLICATE_API_TOKEN=r8_xxxxxxxx
    HAIRBLEND_FADE_WIDTH=0.35
    HAIRBLEND_COLOR_CORRECT=true
    HAIRBLEND_OUTPUTS_DIR=outputs

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from hairblend.core.config import config

    print(config.brightness_min, config.brightness_max)
    print(config.outputs_dir)

Product-Tuning Constants
------------------------
The brightness bands, clamp ranges and ellipse geometry are product-tuning
values rather than fixed semantics.  Each one is exposed here so deployments
can pick between aggressive and subtle correction:
- correction_min / correction_max: (0.6, 1.5) by default, (0.8, 1.2) is subtler
- midtone_min / midtone_max: foreground pixels outside this band are not re-tinted
- color_correct: switches the correction step off entirely

See Also
--------
- HairblendConfig: Full configuration class documentation
"""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from hairblend.core.geometry import RegionSpec


class HairblendConfig(BaseSettings):
    """Main configuration for Hairblend.

    This class uses Pydantic Settings to manage all application configuration.
    Values are loaded from environment variables with the HAIRBLEND_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Sampler Settings:
        brightness_min : float
            Lower (exclusive) bound of the brightness band used by the sampler
        brightness_max : float
            Upper (exclusive) bound of the brightness band used by the sampler
        min_samples : int
            Minimum number of qualifying pixels before a color is reported
        reference_regions : list[tuple[float, float, float, float]]
            (left, top, right, bottom) fractions sampled for the existing hair color

    Compositor Settings:
        ellipse_center_x, ellipse_center_y : float
            Ellipse center as fractions of image width/height
        ellipse_radius_x, ellipse_radius_y : float
            Ellipse radii as fractions of image width/height
        fade_width : float
            Width of the soft transition band relative to the radius (0-1)
        midtone_min, midtone_max : float
            Inclusive brightness band of foreground pixels that get re-tinted
        correction_min, correction_max : float
            Clamp range for the per-channel correction ratios
        inner_sample_scale : float
            Radius factor of the inner ellipse used to sample the foreground
        color_correct : bool
            Apply color correction by default
        blend_enabled : bool
            Blend generated results onto the original photo by default

    Prediction Service:
        replicate_api_token : str | None
            Bearer token for the hosted prediction service
        prediction_base_url : str
            Base URL of the prediction REST API
        prediction_model_version : str
            Model version identifier sent with every prediction
        poll_interval : float
            Seconds between status polls
        max_polls : int
            Maximum number of status polls before giving up
        request_timeout : float
            Per-request HTTP timeout in seconds

    Image I/O:
        max_upload_bytes : int
            Largest accepted upload
        max_image_size : int
            Longest side of normalized input photos
        output_quality : int
            JPEG quality used when encoding images for the prediction service

    Paths / Server:
        outputs_dir : Path
            Directory to save composited results
        server_host : str
            Server bind address
        server_port : int
            Server port (1024-65535)

    Notes
    -----
    - outputs_dir is created automatically if it doesn't exist
    - Configuration is immutable after initialization
    - To modify config, set environment variables and restart the application

    Examples
    --------
    Create a custom configuration:

        >>> custom_config = HairblendConfig(
        ...     correction_min=0.8,
        ...     correction_max=1.2,
        ...     fade_width=0.25,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HAIRBLEND_",
        case_sensitive=False,
    )

    # Sampler settings
    brightness_min: float = Field(
        default=30.0,
        description="Pixels at or below this brightness are treated as shadow",
        ge=0.0,
        le=255.0,
    )
    brightness_max: float = Field(
        default=200.0,
        description="Pixels at or above this brightness are treated as highlight/background",
        ge=0.0,
        le=255.0,
    )
    min_samples: int = Field(
        default=30,
        description="Minimum qualifying pixels before a sampled color is trusted",
        ge=1,
    )
    reference_regions: list[tuple[float, float, float, float]] = Field(
        default=[(0.05, 0.15, 0.25, 0.45), (0.75, 0.15, 0.95, 0.45)],
        description="Fractional (left, top, right, bottom) regions sampled for the hair color",
    )

    # Ellipse geometry (fractions of the image dimensions)
    ellipse_center_x: float = Field(default=0.5, ge=0.0, le=1.0)
    ellipse_center_y: float = Field(default=0.2, ge=0.0, le=1.0)
    ellipse_radius_x: float = Field(default=0.38, gt=0.0, le=1.0)
    ellipse_radius_y: float = Field(default=0.23, gt=0.0, le=1.0)
    fade_width: float = Field(
        default=0.35,
        description="Soft transition band width relative to the radius",
        ge=0.0,
        le=1.0,
    )

    # Color correction
    midtone_min: float = Field(default=20.0, ge=0.0, le=255.0)
    midtone_max: float = Field(default=220.0, ge=0.0, le=255.0)
    correction_min: float = Field(
        default=0.6,
        description="Lower clamp for per-channel correction ratios",
        gt=0.0,
    )
    correction_max: float = Field(
        default=1.5,
        description="Upper clamp for per-channel correction ratios",
        gt=0.0,
    )
    inner_sample_scale: float = Field(
        default=0.6,
        description="Radius factor of the inner ellipse used to sample the generated image",
        gt=0.0,
        le=1.0,
    )
    color_correct: bool = Field(
        default=True,
        description="Re-tint generated pixels toward the original hair color",
    )
    blend_enabled: bool = Field(
        default=True,
        description="Blend the generated result back onto the original photo",
    )

    # Prediction service
    replicate_api_token: str | None = Field(
        default=None,
        description="API token for the hosted prediction service",
    )
    prediction_base_url: str = Field(
        default="https://api.replicate.com/v1",
        description="Base URL of the prediction REST API",
    )
    prediction_model_version: str = Field(
        default="black-forest-labs/flux-kontext-pro",
        description="Model version identifier for image editing predictions",
    )
    poll_interval: float = Field(default=2.0, ge=0.0)
    max_polls: int = Field(default=60, ge=1)
    request_timeout: float = Field(default=30.0, gt=0.0)

    # Image I/O
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    max_image_size: int = Field(default=1024, ge=64, le=4096)
    output_quality: int = Field(default=92, ge=1, le=100)

    # Paths
    outputs_dir: Path = Field(
        default=Path("outputs"),
        description="Directory to save composited results",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=3001,
        description="Server port",
        ge=1024,
        le=65535,
    )

    @model_validator(mode="after")
    def _check_bands(self) -> "HairblendConfig":
        """Reject inverted bands and clamp ranges."""
        if self.brightness_min >= self.brightness_max:
            raise ValueError("brightness_min must be lower than brightness_max")
        if self.midtone_min > self.midtone_max:
            raise ValueError("midtone_min must not exceed midtone_max")
        if self.correction_min > self.correction_max:
            raise ValueError("correction_min must not exceed correction_max")
        return self

    def __init__(self, **kwargs):
        """Initialize configuration and create the outputs directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.outputs_dir.mkdir(parents=True, exist_ok=True)

    @property
    def correction_bounds(self) -> tuple[float, float]:
        """Clamp range for correction ratios as a ``(low, high)`` tuple."""
        return (self.correction_min, self.correction_max)

    @property
    def midtone_band(self) -> tuple[float, float]:
        """Inclusive brightness band of re-tintable foreground pixels."""
        return (self.midtone_min, self.midtone_max)

    @property
    def reference_region_specs(self) -> tuple[RegionSpec, ...]:
        """``reference_regions`` as :class:`RegionSpec` objects."""
        return tuple(RegionSpec(*bounds) for bounds in self.reference_regions)


# Global configuration instance
# Loads values from environment variables (HAIRBLEND_* prefix) and .env file.
config = HairblendConfig()
