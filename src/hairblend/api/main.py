"""Hairblend — FastAPI Application.

This module is the single entry point for the web service.  It defines the
FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :data:`~hairblend.core.config.config` and is
  stored on ``app.state`` at startup so tests can swap it.
- **Generation** is delegated to the hosted prediction service through
  :class:`~hairblend.core.prediction.PredictionClient`.
- **Blending** of the generated result onto the original photo is done
  locally by :class:`~hairblend.core.pipeline.BlendPipeline`.
- **Results** are written as PNG files to ``outputs_dir`` and served back
  by ``GET /outputs/{filename}``.

The generate route is a plain ``def`` so FastAPI runs it in a worker
thread; polling the prediction service blocks.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/api/health``               Liveness and API-key status
GET       ``/api/presets``              Available instruction presets
POST      ``/api/generate``             Upload a photo, generate, blend
GET       ``/outputs/{filename}``       Fetch a saved composite
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    hairblend

Direct invocation::

    python -m hairblend.api.main
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from hairblend import __version__
from hairblend.api.models import GenerateResponse, HealthResponse, PresetsResponse
from hairblend.api.presets import (
    DEFAULT_DENSITY,
    DEFAULT_HAIRLINE,
    DEFAULT_STYLE,
    available_presets,
    build_instructions,
)
from hairblend.core.config import config
from hairblend.core.pipeline import BlendPipeline
from hairblend.core.prediction import PredictionClient, PredictionError, PredictionTimeout
from hairblend.core.raster import ImageDecodeError, RasterImage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle: prediction client setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Stores the configuration, a :class:`PredictionClient` and a
        :class:`BlendPipeline` on ``app.state``.

    On shutdown:
        Closes the prediction client's HTTP connection pool.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    app.state.config = config
    app.state.prediction_client = PredictionClient(config)
    app.state.pipeline = BlendPipeline(config)
    if not config.replicate_api_token:
        logger.warning("HAIRBLEND_REPLICATE_API_TOKEN is not set; /api/generate will fail.")

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    app.state.prediction_client.close()
    logger.info("Prediction client closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Hairblend",
    description="Hair restoration previews: hosted generation plus local elliptical blending.",
    version=__version__,
    lifespan=lifespan,
)

# Allow cross-origin requests so a separately served frontend can upload.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Upload helpers.
# ---------------------------------------------------------------------------


def _read_upload(image: UploadFile | None, max_bytes: int) -> bytes:
    """Validate and read an uploaded image.

    Args:
        image: The multipart upload, or ``None`` if the field was missing.
        max_bytes: Largest accepted payload.

    Returns:
        The raw upload bytes.

    Raises:
        HTTPException: 400 if missing, empty or not an image type; 413 if
            larger than ``max_bytes``.
    """
    if image is None:
        raise HTTPException(status_code=400, detail="No image uploaded")
    if not (image.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files allowed")

    # Read one byte past the limit so oversize uploads are detectable
    # without buffering the whole file.
    data = image.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Image exceeds the {max_bytes // (1024 * 1024)} MB upload limit",
        )
    if not data:
        raise HTTPException(status_code=400, detail="No image uploaded")
    return data


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Report liveness and whether the prediction API token is configured."""
    return HealthResponse(
        status="ok",
        has_api_key=bool(app.state.config.replicate_api_token),
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
    )


@app.get("/api/presets", response_model=PresetsResponse)
async def presets() -> PresetsResponse:
    """Return the instruction preset names accepted by ``/api/generate``."""
    return PresetsResponse(**available_presets())


@app.post("/api/generate", response_model=GenerateResponse)
def generate(
    image: UploadFile | None = File(default=None),
    style: str = Form(default=DEFAULT_STYLE),
    density: str = Form(default=DEFAULT_DENSITY),
    hairline: str = Form(default=DEFAULT_HAIRLINE),
    blend: bool | None = Form(default=None),
    color_correct: bool | None = Form(default=None),
) -> GenerateResponse:
    """Generate a hair restoration preview for an uploaded photo.

    This endpoint:

    1. Checks that the prediction API token is configured.
    2. Validates the upload (image type, size limit, decodable).
    3. Compiles the instructions from the style/density/hairline presets.
    4. Normalizes the photo and submits it to the prediction service, then
       polls until the job finishes.
    5. Unless blending is disabled, downloads the result, composites it
       onto the photo through the blend ellipse and saves it as PNG.

    Args:
        image: Uploaded photo (``image/*``).
        style: Style preset name.
        density: Density preset name.
        hairline: Hairline preset name.
        blend: Override ``config.blend_enabled``.
        color_correct: Override ``config.color_correct``.

    Returns:
        A :class:`GenerateResponse`.

    Raises:
        HTTPException: 400 for a bad upload or unknown preset, 413 for an
            oversize upload, 500 if the API token is missing, 502 if the
            prediction fails, 504 if it times out.
    """
    cfg = app.state.config
    client: PredictionClient = app.state.prediction_client
    pipeline: BlendPipeline = app.state.pipeline

    # --- Preconditions -----------------------------------------------------
    if not client.has_api_key:
        raise HTTPException(status_code=500, detail="API token not configured.")

    data = _read_upload(image, cfg.max_upload_bytes)

    try:
        instructions = build_instructions(style=style, density=density, hairline=hairline)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e.args[0])) from e

    try:
        photo = RasterImage.from_bytes(data).normalized(cfg.max_image_size)
    except ImageDecodeError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    # --- External generation -----------------------------------------------
    encoded = photo.to_bytes("JPEG", quality=cfg.output_quality)
    try:
        prediction = client.generate(encoded, "image/jpeg", instructions)
    except PredictionTimeout as e:
        logger.warning("Prediction timed out: %s", e)
        raise HTTPException(status_code=504, detail=str(e)) from e
    except PredictionError as e:
        logger.warning("Prediction failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    result_id = str(uuid.uuid4())
    do_blend = cfg.blend_enabled if blend is None else blend

    if not do_blend:
        return GenerateResponse(
            id=result_id,
            output_url=prediction.output_url,
            prediction_id=prediction.id,
            blended=False,
            style=style,
            density=density,
            hairline=hairline,
        )

    # --- Local blending ----------------------------------------------------
    try:
        generated = client.fetch_image(prediction.output_url)
    except PredictionError as e:
        logger.warning("Could not fetch generated image: %s", e)
        raise HTTPException(status_code=502, detail=str(e)) from e

    filename = f"{result_id}.png"
    result, _ = pipeline.blend_and_save(
        photo,
        generated,
        color_correct=color_correct,
        output_path=cfg.outputs_dir / filename,
    )

    return GenerateResponse(
        id=result_id,
        output_url=f"/outputs/{filename}",
        prediction_id=prediction.id,
        blended=True,
        color_corrected=result.color_corrected,
        reference_color=list(result.reference_color.as_tuple()) if result.reference_color else None,
        style=style,
        density=density,
        hairline=hairline,
    )


@app.get("/outputs/{filename}")
async def get_output(filename: str) -> FileResponse:
    """Serve a saved composite PNG.

    Raises:
        HTTPException: 404 if the file does not exist or the name is not a
            plain filename.
    """
    if "/" in filename or "\\" in filename or filename.startswith("."):
        raise HTTPException(status_code=404, detail="Result not found")
    path = app.state.config.outputs_dir / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Result not found")
    return FileResponse(path, media_type="image/png")


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~hairblend.core.config.config` (which
    loads from ``HAIRBLEND_SERVER_HOST`` and ``HAIRBLEND_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:3001``.

    This function is registered as the ``hairblend`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "hairblend.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
