"""Pydantic response models for the Hairblend API.

FastAPI uses these for serialisation and OpenAPI documentation.  The
generate endpoint takes a multipart upload, so its inputs are form fields
rather than a JSON body; only responses are modelled here.

Models
------
HealthResponse
    Payload of ``GET /api/health``.
PresetsResponse
    Payload of ``GET /api/presets``.
GenerateResponse
    Payload of ``POST /api/generate``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body for ``GET /api/health``.

    Attributes:
        status: Always ``"ok"`` when the server is up.
        has_api_key: Whether a prediction-service token is configured.
        timestamp: ISO-8601 server time.
        version: Package version.
    """

    status: str = Field(default="ok")
    has_api_key: bool = Field(..., description="True if the prediction API token is set.")
    timestamp: str = Field(..., description="ISO-8601 server time.")
    version: str = Field(..., description="Hairblend version.")


class PresetsResponse(BaseModel):
    """Response body for ``GET /api/presets``."""

    style: list[str]
    density: list[str]
    hairline: list[str]


class GenerateResponse(BaseModel):
    """Response body for ``POST /api/generate``.

    Attributes:
        success: ``True`` when a result was produced.
        id: Identifier of the saved result.
        output_url: Where the result can be fetched.  A local
            ``/outputs/...`` path when blended, otherwise the prediction
            service's own URL.
        prediction_id: Identifier assigned by the prediction service.
        blended: Whether the result was composited onto the original photo.
        color_corrected: Whether generated pixels were re-tinted.
        reference_color: Sampled ``[r, g, b]`` hair color, if any.
        style, density, hairline: Presets used for the instructions.
    """

    success: bool = True
    id: str
    output_url: str
    prediction_id: str
    blended: bool
    color_corrected: bool = False
    reference_color: list[int] | None = None
    style: str
    density: str
    hairline: str
