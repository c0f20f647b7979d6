"""Tests for hairblend.core.config — configuration management.

Tests cover:
- Default values for sampler, compositor and prediction settings.
- Environment variable overrides via the HAIRBLEND_ prefix.
- Automatic outputs directory creation on initialisation.
- Pydantic validation constraints (port range, inverted bands, etc.).
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from hairblend.core.config import HairblendConfig
from hairblend.core.geometry import RegionSpec


def _make(temp_dir: Path, **overrides) -> HairblendConfig:
    return HairblendConfig(_env_file=None, outputs_dir=str(temp_dir / "out"), **overrides)


class TestConfigDefaults:
    """Verify that HairblendConfig provides sensible defaults."""

    def test_sampler_defaults(self, test_config: HairblendConfig):
        """Brightness band (30, 200) and 30 minimum samples."""
        assert test_config.brightness_min == 30
        assert test_config.brightness_max == 200
        assert test_config.min_samples == 30

    def test_reference_region_defaults(self, test_config: HairblendConfig):
        """Side-of-head regions, resolved to RegionSpec objects."""
        assert test_config.reference_region_specs == (
            RegionSpec(0.05, 0.15, 0.25, 0.45),
            RegionSpec(0.75, 0.15, 0.95, 0.45),
        )

    def test_ellipse_defaults(self, test_config: HairblendConfig):
        assert test_config.ellipse_center_x == 0.5
        assert test_config.ellipse_center_y == 0.2
        assert test_config.ellipse_radius_x == 0.38
        assert test_config.ellipse_radius_y == 0.23
        assert test_config.fade_width == 0.35

    def test_correction_defaults(self, test_config: HairblendConfig):
        assert test_config.correction_bounds == (0.6, 1.5)
        assert test_config.midtone_band == (20, 220)
        assert test_config.inner_sample_scale == 0.6
        assert test_config.color_correct is True
        assert test_config.blend_enabled is True

    def test_default_token_is_unset(self, monkeypatch, temp_dir: Path):
        monkeypatch.delenv("HAIRBLEND_REPLICATE_API_TOKEN", raising=False)
        assert _make(temp_dir).replicate_api_token is None

    def test_default_upload_limit(self, test_config: HairblendConfig):
        """Uploads are capped at 10 MiB."""
        assert test_config.max_upload_bytes == 10 * 1024 * 1024

    def test_default_server_port(self, monkeypatch, temp_dir: Path):
        monkeypatch.delenv("HAIRBLEND_SERVER_PORT", raising=False)
        assert _make(temp_dir).server_port == 3001


class TestConfigDirectoryCreation:
    def test_outputs_dir_created(self, test_config: HairblendConfig):
        assert test_config.outputs_dir.is_dir()

    def test_outputs_dir_is_path(self, test_config: HairblendConfig):
        assert isinstance(test_config.outputs_dir, Path)


class TestEnvironmentOverrides:
    """HAIRBLEND_* environment variables take precedence over defaults."""

    def test_fade_width_from_env(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("HAIRBLEND_FADE_WIDTH", "0.2")
        assert _make(temp_dir).fade_width == pytest.approx(0.2)

    def test_color_correct_from_env(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("HAIRBLEND_COLOR_CORRECT", "false")
        assert _make(temp_dir).color_correct is False

    def test_token_from_env(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("HAIRBLEND_REPLICATE_API_TOKEN", "r8_secret")
        assert _make(temp_dir).replicate_api_token == "r8_secret"

    def test_reference_regions_from_env(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("HAIRBLEND_REFERENCE_REGIONS", "[[0.1, 0.2, 0.3, 0.4]]")
        assert _make(temp_dir).reference_region_specs == (RegionSpec(0.1, 0.2, 0.3, 0.4),)

    def test_prefix_is_case_insensitive(self, monkeypatch, temp_dir: Path):
        monkeypatch.setenv("hairblend_min_samples", "12")
        assert _make(temp_dir).min_samples == 12


class TestConfigValidation:
    """Pydantic validation constraints."""

    def test_port_below_range(self, temp_dir: Path):
        with pytest.raises(ValidationError):
            _make(temp_dir, server_port=80)

    def test_fade_width_above_one(self, temp_dir: Path):
        with pytest.raises(ValidationError):
            _make(temp_dir, fade_width=1.5)

    def test_inverted_brightness_band(self, temp_dir: Path):
        with pytest.raises(ValidationError, match="brightness_min"):
            _make(temp_dir, brightness_min=200, brightness_max=30)

    def test_equal_brightness_band(self, temp_dir: Path):
        with pytest.raises(ValidationError):
            _make(temp_dir, brightness_min=100, brightness_max=100)

    def test_inverted_midtone_band(self, temp_dir: Path):
        with pytest.raises(ValidationError, match="midtone_min"):
            _make(temp_dir, midtone_min=230, midtone_max=20)

    def test_inverted_correction_bounds(self, temp_dir: Path):
        with pytest.raises(ValidationError, match="correction_min"):
            _make(temp_dir, correction_min=1.5, correction_max=0.6)

    def test_subtle_bounds_accepted(self, temp_dir: Path):
        cfg = _make(temp_dir, correction_min=0.8, correction_max=1.2)
        assert cfg.correction_bounds == (0.8, 1.2)
