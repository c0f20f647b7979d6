"""Shared pytest fixtures for Hairblend tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import numpy as np
import pytest

from hairblend.core.config import HairblendConfig
from hairblend.core.pipeline import BlendPipeline
from hairblend.core.prediction import PredictionResult
from hairblend.core.raster import RasterImage

HAIR_BROWN = (90, 60, 40)
GENERATED_GRAY = (60, 60, 60)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> HairblendConfig:
    """Create a test configuration with a temporary outputs directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        HairblendConfig instance for testing
    """
    return HairblendConfig(
        _env_file=None,
        outputs_dir=str(temp_dir / "outputs"),
        replicate_api_token="test-token",
        prediction_base_url="https://predictions.test/v1",
        prediction_model_version="acme/hair-editor",
        poll_interval=0.0,
        max_polls=5,
    )


@pytest.fixture
def brown_photo() -> RasterImage:
    """100x100 photo whose every pixel is mid-brown hair."""
    return RasterImage.solid(100, 100, HAIR_BROWN)


@pytest.fixture
def gray_generated() -> RasterImage:
    """50x50 generated result in flat gray (deliberately a different size)."""
    return RasterImage.solid(50, 50, GENERATED_GRAY)


@pytest.fixture
def noise_pair() -> tuple[RasterImage, RasterImage]:
    """Two unrelated random 80x60 images."""
    rng = np.random.default_rng(1234)
    a = rng.integers(0, 256, size=(60, 80, 3), dtype=np.uint8)
    b = rng.integers(0, 256, size=(60, 80, 3), dtype=np.uint8)
    return RasterImage(a), RasterImage(b)


@pytest.fixture
def jpeg_upload(brown_photo: RasterImage) -> bytes:
    """The brown photo encoded as JPEG, as a browser would upload it."""
    return brown_photo.to_bytes("JPEG", quality=95)


class StubPredictionClient:
    """Stand-in for PredictionClient that never touches the network.

    Attributes:
        generated: Image returned by fetch_image().
        has_api_key: Reported token status.
        error: Exception raised by generate(), if set.
        calls: Arguments of every generate() call.
    """

    def __init__(self, generated: RasterImage, *, has_api_key: bool = True, error=None):
        self.generated = generated
        self.has_api_key = has_api_key
        self.error = error
        self.calls: list[dict] = []
        self.fetched: list[str] = []

    def generate(self, image_bytes: bytes, mime_type: str, instructions: str, **params):
        self.calls.append(
            {
                "image_bytes": image_bytes,
                "mime_type": mime_type,
                "instructions": instructions,
                **params,
            }
        )
        if self.error is not None:
            raise self.error
        return PredictionResult(
            id="pred-123",
            status="succeeded",
            output_url="https://cdn.predictions.test/out.png",
            polls=1,
        )

    def fetch_image(self, url: str) -> RasterImage:
        self.fetched.append(url)
        return self.generated

    def close(self) -> None:
        pass


@pytest.fixture
def stub_prediction_client(gray_generated: RasterImage) -> StubPredictionClient:
    """A prediction client stub returning the gray generated image."""
    return StubPredictionClient(gray_generated)


@pytest.fixture
def test_client(test_config: HairblendConfig, stub_prediction_client: StubPredictionClient):
    """FastAPI TestClient with the prediction client replaced by a stub.

    The lifespan runs first (creating the real client); its state is then
    swapped for the test configuration and the stub.
    """
    from fastapi.testclient import TestClient

    from hairblend.api.main import app

    with TestClient(app) as client:
        app.state.prediction_client.close()
        app.state.config = test_config
        app.state.prediction_client = stub_prediction_client
        app.state.pipeline = BlendPipeline(test_config)
        yield client
