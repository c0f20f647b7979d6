"""Client for the hosted image-generation prediction service.

The service accepts an encoded photo plus free-text instructions, runs an
asynchronous job, and eventually reports a terminal status.  This module
wraps the Replicate-compatible REST flow:

1. ``POST /predictions`` (or ``/models/{owner}/{name}/predictions``) with the
   photo as a base64 data URI.
2. ``GET /predictions/{id}`` every ``poll_interval`` seconds, at most
   ``max_polls`` times, until the status is ``succeeded``, ``failed`` or
   ``canceled``.
3. Normalize the ``output`` field into one URL and download the image.

Response Normalization
----------------------
Depending on the hosted model, ``output`` is a string, a list of strings, or
an object with a ``url``/``image`` key.  :func:`normalize_output` is the one
place that handles those shapes; everything downstream only sees a URL.

Usage
-----
::

    from hairblend.core.config import config
    from hairblend.core.prediction import PredictionClient

    with PredictionClient(config) as client:
        result = client.generate(photo_bytes, "image/jpeg", instructions)
        generated = client.fetch_image(result.output_url)
"""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from hairblend.core.config import HairblendConfig
from hairblend.core.raster import ImageDecodeError, RasterImage

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"succeeded", "failed", "canceled"})


class PredictionError(RuntimeError):
    """The prediction service could not be reached or returned an error."""


class PredictionFailed(PredictionError):
    """The prediction reached a failed or canceled state, or returned no image."""


class PredictionTimeout(PredictionError):
    """The prediction did not finish within the polling budget."""


@dataclass(frozen=True)
class PredictionResult:
    """Terminal state of a successful prediction.

    Attributes:
        id: Prediction identifier assigned by the service.
        status: Always ``"succeeded"``.
        output_url: Normalized URL of the generated image.
        polls: Number of status polls it took.
    """

    id: str
    status: str
    output_url: str
    polls: int = 0


def normalize_output(output: Any) -> str:
    """Reduce a prediction ``output`` field to a single image URL.

    Accepts a URL string, a non-empty list whose first element normalizes
    to a URL, or a mapping with a ``url``, ``image`` or ``output`` key.

    Raises:
        PredictionFailed: If no URL can be extracted.
    """
    if isinstance(output, str):
        if output.strip():
            return output.strip()
    elif isinstance(output, (list, tuple)):
        if output:
            return normalize_output(output[0])
    elif isinstance(output, dict):
        for key in ("url", "image", "output"):
            if key in output:
                return normalize_output(output[key])
    raise PredictionFailed(f"Prediction returned no usable image output: {output!r}")


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode image bytes as a ``data:`` URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class PredictionClient:
    """Submit, poll and fetch predictions over HTTP.

    Attributes:
        config: Configuration with token, base URL, model and polling budget.
        http: The underlying ``httpx.Client``.
    """

    def __init__(
        self,
        config: HairblendConfig,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            config: Application configuration.
            http_client: Pre-built client (tests pass one backed by
                ``httpx.MockTransport``).  Created from config when omitted.
            sleep: Delay function used between polls.
        """
        self.config = config
        self._sleep = sleep
        self._owns_http = http_client is None
        if http_client is None:
            http_client = httpx.Client(timeout=config.request_timeout)
        self.http = http_client

    # -- Lifecycle ----------------------------------------------------------

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> PredictionClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def has_api_key(self) -> bool:
        return bool(self.config.replicate_api_token)

    # -- Requests -----------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        if not self.config.replicate_api_token:
            raise PredictionError("Prediction service API token is not configured")
        return {
            "Authorization": f"Bearer {self.config.replicate_api_token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self.http.request(method, url, headers=self._headers(), **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise PredictionError(
                f"Prediction service returned HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.RequestError as e:
            raise PredictionError(f"Prediction service request failed: {e}") from e
        except ValueError as e:
            raise PredictionError(f"Prediction service returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise PredictionError(
                f"Prediction service returned an unexpected response: {type(data).__name__}"
            )
        return data

    def _create_url_and_body(self, model_input: dict) -> tuple[str, dict]:
        base = self.config.prediction_base_url.rstrip("/")
        model = self.config.prediction_model_version
        if ":" in model:
            return f"{base}/predictions", {"version": model.split(":", 1)[1], "input": model_input}
        if "/" in model:
            return f"{base}/models/{model}/predictions", {"input": model_input}
        return f"{base}/predictions", {"version": model, "input": model_input}

    def submit(
        self,
        image_bytes: bytes,
        mime_type: str,
        instructions: str,
        *,
        aspect_ratio: str | None = "match_input_image",
        quality: int | None = None,
        strength: float | None = None,
    ) -> str:
        """Start a prediction and return its identifier.

        Args:
            image_bytes: Encoded source photo.
            mime_type: MIME type of ``image_bytes``.
            instructions: Free-text generation instructions.
            aspect_ratio: Output aspect ratio hint.
            quality: Output quality hint (1-100).
            strength: How far the model may depart from the input (0-1).

        Raises:
            PredictionError: On transport errors or a malformed response.
        """
        model_input: dict[str, Any] = {
            "prompt": instructions,
            "input_image": to_data_uri(image_bytes, mime_type),
        }
        if aspect_ratio is not None:
            model_input["aspect_ratio"] = aspect_ratio
        if quality is not None:
            model_input["output_quality"] = quality
        if strength is not None:
            model_input["prompt_strength"] = strength

        url, body = self._create_url_and_body(model_input)
        logger.info("Submitting prediction to %s (%d bytes)", url, len(image_bytes))
        data = self._request("POST", url, json=body)

        prediction_id = data.get("id")
        if not prediction_id:
            raise PredictionError(f"Prediction service response has no id: {data!r}")
        logger.info("Prediction %s created (status=%s)", prediction_id, data.get("status"))
        return prediction_id

    def wait(self, prediction_id: str) -> PredictionResult:
        """Poll until the prediction reaches a terminal state.

        Raises:
            PredictionFailed: Status ``failed``/``canceled`` or no output.
            PredictionTimeout: Still running after ``max_polls`` polls.
            PredictionError: On transport errors.
        """
        url = f"{self.config.prediction_base_url.rstrip('/')}/predictions/{prediction_id}"

        for attempt in range(1, self.config.max_polls + 1):
            data = self._request("GET", url)
            status = data.get("status")
            logger.debug("Prediction %s poll %d: %s", prediction_id, attempt, status)

            if status == "succeeded":
                output_url = normalize_output(data.get("output"))
                logger.info("Prediction %s succeeded after %d polls", prediction_id, attempt)
                return PredictionResult(
                    id=prediction_id, status=status, output_url=output_url, polls=attempt
                )
            if status in TERMINAL_STATUSES:
                reason = data.get("error") or f"prediction {status}"
                logger.warning("Prediction %s ended with %s: %s", prediction_id, status, reason)
                raise PredictionFailed(str(reason))

            if attempt < self.config.max_polls:
                self._sleep(self.config.poll_interval)

        raise PredictionTimeout(
            f"Prediction {prediction_id} did not finish after {self.config.max_polls} polls"
        )

    def fetch_image(self, url: str) -> RasterImage:
        """Download and decode the generated image.

        Data URIs are decoded locally; anything else is fetched over HTTP.
        """
        if url.startswith("data:"):
            try:
                payload = base64.b64decode(url.split(",", 1)[1])
            except (IndexError, ValueError) as e:
                raise PredictionFailed(f"Malformed data URI output: {e}") from e
        else:
            try:
                response = self.http.get(url, follow_redirects=True)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise PredictionError(
                    f"Could not download generated image: HTTP {e.response.status_code}"
                ) from e
            except httpx.RequestError as e:
                raise PredictionError(f"Could not download generated image: {e}") from e
            payload = response.content

        try:
            return RasterImage.from_bytes(payload)
        except ImageDecodeError as e:
            raise PredictionFailed(f"Generated image could not be decoded: {e}") from e

    def generate(
        self,
        image_bytes: bytes,
        mime_type: str,
        instructions: str,
        **params,
    ) -> PredictionResult:
        """Submit a prediction and wait for it to finish."""
        prediction_id = self.submit(image_bytes, mime_type, instructions, **params)
        return self.wait(prediction_id)
