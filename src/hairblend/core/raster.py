"""Immutable RGB raster buffers.

:class:`RasterImage` is the single pixel container shared by the sampler and
the compositor.  It wraps a read-only ``numpy`` array of shape
``(height, width, 3)`` with dtype ``uint8`` in row-major order, so the raw
buffer always satisfies ``len(buffer) == width * height * channels``.

Instances are never mutated in place.  Every transformation (resize,
normalisation, compositing) produces a new ``RasterImage``.

Decoding and encoding go through Pillow.  Decoded photos have their EXIF
orientation applied and are converted to RGB, so phone uploads arrive
upright and without an alpha channel.

Usage
-----
::

    from hairblend.core.raster import RasterImage

    photo = RasterImage.from_bytes(upload_bytes).normalized(1024)
    generated = RasterImage.from_bytes(result_bytes).resized(photo.width, photo.height)
    png_bytes = generated.to_bytes("PNG")
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Literal

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

CHANNELS = 3

_RESAMPLE = {
    "nearest": Image.Resampling.NEAREST,
    "bilinear": Image.Resampling.BILINEAR,
}


class ImageDecodeError(ValueError):
    """Raised when encoded bytes cannot be decoded into an image."""


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Owned, read-only RGB pixel buffer.

    Attributes:
        pixels: ``uint8`` array of shape ``(height, width, 3)``.  The array
            is flagged non-writeable; copy it before editing.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray):
            raise ValueError("pixels must be a numpy array")
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise ValueError(f"pixels must have shape (height, width, 3), got {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise ValueError(f"pixels must be uint8, got {pixels.dtype}")
        if pixels.flags.writeable or pixels.base is not None:
            # Take ownership so callers cannot alias the buffer.
            owned = np.ascontiguousarray(pixels).copy()
            owned.flags.writeable = False
            object.__setattr__(self, "pixels", owned)

    # -- Constructors -------------------------------------------------------

    @classmethod
    def from_array(cls, array: np.ndarray) -> RasterImage:
        """Build an image from an ``(H, W, 3)`` array.

        Non-``uint8`` input is clipped into ``[0, 255]`` and rounded.
        """
        array = np.asarray(array)
        if array.dtype != np.uint8:
            array = np.clip(np.floor(array.astype(np.float64) + 0.5), 0, 255).astype(np.uint8)
        return cls(np.array(array, dtype=np.uint8, copy=True))

    @classmethod
    def from_pil(cls, image: Image.Image) -> RasterImage:
        """Build an image from a Pillow image, converting to RGB if needed."""
        if image.mode != "RGB":
            image = image.convert("RGB")
        return cls(np.array(image, dtype=np.uint8))

    @classmethod
    def from_bytes(cls, data: bytes) -> RasterImage:
        """Decode encoded image bytes (JPEG, PNG, WebP, ...).

        Raises:
            ImageDecodeError: If the data is empty or not a decodable image.
        """
        if not data:
            raise ImageDecodeError("No image data supplied")
        try:
            with Image.open(io.BytesIO(data)) as img:
                img = ImageOps.exif_transpose(img)
                return cls.from_pil(img)
        except (UnidentifiedImageError, OSError) as e:
            raise ImageDecodeError(f"Could not decode image: {e}") from e

    @classmethod
    def solid(cls, width: int, height: int, rgb: tuple[int, int, int]) -> RasterImage:
        """Create a uniformly colored image."""
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be positive")
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[...] = np.asarray(rgb, dtype=np.uint8)
        return cls(pixels)

    # -- Properties ---------------------------------------------------------

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def channels(self) -> int:
        return CHANNELS

    @property
    def size(self) -> tuple[int, int]:
        """``(width, height)``, the same order Pillow uses."""
        return (self.width, self.height)

    @property
    def buffer(self) -> bytes:
        """Raw row-major samples."""
        return self.pixels.tobytes()

    def pixel(self, x: int, y: int) -> tuple[int, int, int]:
        """Return the RGB triple at column ``x``, row ``y``."""
        r, g, b = self.pixels[y, x]
        return (int(r), int(g), int(b))

    # -- Transformations ----------------------------------------------------

    def resized(
        self,
        width: int,
        height: int,
        resample: Literal["nearest", "bilinear"] = "bilinear",
    ) -> RasterImage:
        """Stretch the image to exactly ``width`` x ``height``.

        Returns ``self`` when the size already matches.
        """
        if (width, height) == self.size:
            return self
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be positive")
        logger.debug("Resizing %dx%d -> %dx%d (%s)", self.width, self.height, width, height, resample)
        resized = self.to_pil().resize((width, height), _RESAMPLE[resample])
        return RasterImage.from_pil(resized)

    def normalized(self, max_size: int) -> RasterImage:
        """Downscale so the longest side is at most ``max_size``.

        Aspect ratio is preserved and smaller images are returned unchanged.
        """
        longest = max(self.width, self.height)
        if longest <= max_size:
            return self
        scale = max_size / longest
        width = max(1, round(self.width * scale))
        height = max(1, round(self.height * scale))
        logger.info("Normalizing image from %s to %s", self.size, (width, height))
        resized = self.to_pil().resize((width, height), Image.Resampling.LANCZOS)
        return RasterImage.from_pil(resized)

    # -- Encoding -----------------------------------------------------------

    def to_pil(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels))

    def to_bytes(self, format: str = "PNG", quality: int = 92) -> bytes:
        """Encode the image, e.g. ``"PNG"`` or ``"JPEG"``."""
        out = io.BytesIO()
        if format.upper() in ("JPEG", "JPG"):
            self.to_pil().save(out, format="JPEG", quality=quality)
        else:
            self.to_pil().save(out, format=format)
        return out.getvalue()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(
            np.array_equal(self.pixels, other.pixels)
        )

    def __repr__(self) -> str:
        return f"RasterImage(width={self.width}, height={self.height})"
