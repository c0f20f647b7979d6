"""Tests for hairblend.core.compositor — elliptical blending and correction.

Tests cover:
- Raised-cosine blend weight: endpoints, midpoint, monotonicity, continuity.
- Exact background outside the band and exact foreground inside the core.
- Idempotence when compositing an image with itself.
- The 100x100 gray/red reference scenario against the closed-form formula.
- Color correction derivation, clamping and mid-tone gating.
- Dimension mismatch.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from hairblend.core.compositor import (
    DEFAULT_CORRECTION_BOUNDS,
    SUBTLE_CORRECTION_BOUNDS,
    ColorCorrection,
    DimensionMismatch,
    blend_weight,
    composite_ellipse,
    derive_color_correction,
)
from hairblend.core.geometry import EllipseParams
from hairblend.core.raster import RasterImage
from hairblend.core.sampler import ColorSample


def _expected_weight(d: float, fade: float) -> float:
    if d <= 1 - fade:
        return 1.0
    if d >= 1 + fade:
        return 0.0
    t = (d - (1 - fade)) / (2 * fade)
    return 0.5 + 0.5 * math.cos(math.pi * t)


class TestBlendWeight:
    """The raised-cosine taper."""

    @pytest.mark.parametrize("fade", [0.1, 0.35, 0.5, 1.0])
    def test_endpoints(self, fade):
        assert float(blend_weight(1 - fade, fade)) == 1.0
        assert float(blend_weight(1 + fade, fade)) == 0.0

    def test_midpoint_is_half(self):
        assert float(blend_weight(1.0, 0.35)) == pytest.approx(0.5)

    def test_monotonic_and_continuous(self):
        fade = 0.35
        d = np.linspace(0.0, 2.0, 4001)
        w = blend_weight(d, fade)
        steps = np.diff(w)
        assert np.all(steps <= 1e-12)
        # No jumps: the largest step is tiny for a fine grid.
        assert np.max(np.abs(steps)) < 0.01

    def test_matches_closed_form(self):
        for d in (0.0, 0.5, 0.66, 0.8, 1.0, 1.2, 1.34, 1.5):
            assert float(blend_weight(d, 0.35)) == pytest.approx(_expected_weight(d, 0.35))

    def test_zero_fade_is_hard_edge(self):
        assert float(blend_weight(1.0, 0.0)) == 1.0
        assert float(blend_weight(1.0001, 0.0)) == 0.0

    def test_array_shape_preserved(self):
        assert blend_weight(np.zeros((3, 4)), 0.2).shape == (3, 4)


class TestCompositeInvariants:
    """Exact regions and idempotence."""

    @pytest.mark.parametrize(
        "ellipse",
        [
            EllipseParams(40, 12, 30, 14, 0.35),
            EllipseParams(10, 50, 25, 40, 0.1),
            EllipseParams(40, 30, 5, 5, 1.0),
        ],
    )
    def test_exact_background_and_foreground(self, noise_pair, ellipse):
        a, b = noise_pair
        out = composite_ellipse(a, b, ellipse)
        d = ellipse.distance_field(a.width, a.height)

        outside = d >= 1 + ellipse.fade_width
        core = d <= 1 - ellipse.fade_width
        assert np.array_equal(out.pixels[outside], a.pixels[outside])
        assert np.array_equal(out.pixels[core], b.pixels[core])

    @pytest.mark.parametrize(
        "ellipse",
        [
            EllipseParams(40, 12, 30, 14, 0.35),
            EllipseParams(0, 0, 200, 3, 0.9),
            EllipseParams(79, 59, 0.5, 0.5, 0.0),
        ],
    )
    def test_self_composite_is_identity(self, noise_pair, ellipse):
        a, _ = noise_pair
        assert composite_ellipse(a, a, ellipse) == a

    def test_inputs_are_not_modified(self, noise_pair):
        a, b = noise_pair
        a_before, b_before = a.pixels.copy(), b.pixels.copy()
        composite_ellipse(a, b, EllipseParams(40, 12, 30, 14, 0.35))
        assert np.array_equal(a.pixels, a_before)
        assert np.array_equal(b.pixels, b_before)

    def test_band_pixels_are_convex_combination(self, noise_pair):
        a, b = noise_pair
        ellipse = EllipseParams(40, 30, 30, 25, 0.5)
        out = composite_ellipse(a, b, ellipse).pixels.astype(int)
        lo = np.minimum(a.pixels, b.pixels).astype(int)
        hi = np.maximum(a.pixels, b.pixels).astype(int)
        assert np.all(out >= lo)
        assert np.all(out <= hi)

    def test_dimension_mismatch_raises(self):
        bg = RasterImage.solid(100, 100, (0, 0, 0))
        fg = RasterImage.solid(50, 50, (0, 0, 0))
        with pytest.raises(DimensionMismatch):
            composite_ellipse(bg, fg, EllipseParams(50, 20, 38, 23))
        assert issubclass(DimensionMismatch, ValueError)


class TestReferenceScenario:
    """100x100 gray background, red foreground, ellipse at (50, 20)."""

    GRAY = (128, 128, 128)
    RED = (200, 50, 50)

    @pytest.fixture
    def result(self):
        bg = RasterImage.solid(100, 100, self.GRAY)
        fg = RasterImage.solid(100, 100, self.RED)
        return composite_ellipse(bg, fg, EllipseParams(50, 20, 38, 23, 0.35))

    def test_deep_inside_is_foreground(self, result):
        assert result.pixel(50, 5) == self.RED
        assert result.pixel(50, 20) == self.RED

    def test_far_outside_is_background(self, result):
        assert result.pixel(50, 99) == self.GRAY
        assert result.pixel(0, 99) == self.GRAY

    def test_transition_matches_closed_form(self, result):
        x, y = 50, 40
        d = abs(y - 20) / 23
        assert 1 - 0.35 < d < 1 + 0.35
        w = _expected_weight(d, 0.35)
        expected = tuple(
            int(math.floor(fg * w + bg * (1 - w) + 0.5)) for fg, bg in zip(self.RED, self.GRAY)
        )
        actual = result.pixel(x, y)
        assert actual == expected
        assert self.RED[0] > actual[0] > self.GRAY[0]
        assert self.RED[1] < actual[1] < self.GRAY[1]


class TestColorCorrection:
    """Ratio derivation and application."""

    def test_derive_ratios(self):
        c = ColorCorrection.derive(ColorSample(90, 60, 40), ColorSample(60, 60, 60))
        assert c.r == pytest.approx(1.5)
        assert c.g == pytest.approx(1.0)
        assert c.b == pytest.approx(40 / 60)

    def test_extreme_ratios_are_clamped(self):
        up = ColorCorrection.derive(ColorSample(250, 250, 250), ColorSample(2, 2, 2))
        down = ColorCorrection.derive(ColorSample(2, 2, 2), ColorSample(250, 250, 250))
        assert up.ratios == (1.5, 1.5, 1.5)
        assert down.ratios == (0.6, 0.6, 0.6)

    def test_zero_current_channel_uses_floor_of_one(self):
        c = ColorCorrection.derive(ColorSample(1, 1, 1), ColorSample(0, 0, 0), bounds=(0.1, 10.0))
        assert c.ratios == (1.0, 1.0, 1.0)

    def test_subtle_bounds(self):
        c = ColorCorrection.derive(
            ColorSample(250, 10, 128), ColorSample(10, 250, 128), SUBTLE_CORRECTION_BOUNDS
        )
        assert c.ratios == (1.2, 0.8, 1.0)

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            ColorCorrection.derive(ColorSample(1, 1, 1), ColorSample(1, 1, 1), bounds=(2.0, 1.0))

    def test_apply_only_touches_midtones(self):
        c = ColorCorrection(1.5, 1.5, 1.5)
        pixels = np.array([[(100, 100, 100), (250, 250, 250), (10, 10, 10)]], dtype=np.uint8)
        out = c.apply(pixels, (20, 220))
        assert out[0, 0].tolist() == [150, 150, 150]
        assert out[0, 1].tolist() == [250, 250, 250]
        assert out[0, 2].tolist() == [10, 10, 10]

    def test_apply_clips(self):
        c = ColorCorrection(1.5, 1.5, 1.5)
        out = c.apply(np.array([[(200, 200, 100)]], dtype=np.uint8), (20, 220))
        assert out[0, 0].tolist() == [255, 255, 150]

    def test_identity(self):
        assert ColorCorrection.identity().ratios == (1.0, 1.0, 1.0)

    def test_default_bounds(self):
        assert DEFAULT_CORRECTION_BOUNDS == (0.6, 1.5)


class TestCompositeWithCorrection:
    def test_core_is_corrected_outside_untouched(self):
        bg = RasterImage.solid(100, 100, (128, 128, 128))
        fg = RasterImage.solid(100, 100, (100, 80, 60))
        ellipse = EllipseParams(50, 20, 38, 23, 0.35)
        out = composite_ellipse(bg, fg, ellipse, correction=ColorCorrection(1.2, 1.0, 0.8))
        assert out.pixel(50, 20) == (120, 80, 48)
        assert out.pixel(50, 99) == (128, 128, 128)

    def test_bright_foreground_passes_through(self):
        bg = RasterImage.solid(100, 100, (0, 0, 0))
        fg = RasterImage.solid(100, 100, (240, 240, 240))
        ellipse = EllipseParams(50, 20, 38, 23, 0.35)
        out = composite_ellipse(bg, fg, ellipse, correction=ColorCorrection(0.6, 0.6, 0.6))
        assert out.pixel(50, 20) == (240, 240, 240)


class TestDeriveColorCorrection:
    def test_pulls_foreground_toward_reference(self):
        bg = RasterImage.solid(100, 100, (90, 60, 40))
        fg = RasterImage.solid(100, 100, (60, 60, 60))
        ellipse = EllipseParams.from_fractions(100, 100)
        c = derive_color_correction(bg, fg, ellipse)
        assert c is not None
        assert c.ratios == pytest.approx((1.5, 1.0, 40 / 60))

    def test_uses_supplied_reference(self):
        bg = RasterImage.solid(100, 100, (0, 0, 0))  # would give no reference
        fg = RasterImage.solid(100, 100, (100, 100, 100))
        ellipse = EllipseParams.from_fractions(100, 100)
        c = derive_color_correction(bg, fg, ellipse, reference=ColorSample(110, 100, 90))
        assert c is not None
        assert c.ratios == pytest.approx((1.1, 1.0, 0.9))

    def test_no_reference_returns_none(self):
        bg = RasterImage.solid(100, 100, (0, 0, 0))
        fg = RasterImage.solid(100, 100, (60, 60, 60))
        assert derive_color_correction(bg, fg, EllipseParams.from_fractions(100, 100)) is None

    def test_unusable_foreground_returns_none(self):
        bg = RasterImage.solid(100, 100, (90, 60, 40))
        fg = RasterImage.solid(100, 100, (255, 255, 255))
        assert derive_color_correction(bg, fg, EllipseParams.from_fractions(100, 100)) is None
