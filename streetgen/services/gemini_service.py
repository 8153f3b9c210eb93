"""Gemini image generation over the REST API.

Talks to the `generateContent` endpoint directly with httpx so the request
carries the exact wire format the image models expect (inline PNG reference,
TEXT+IMAGE response modalities and an image_config block).
See: https://ai.google.dev/gemini-api/docs/image-generation
"""

import base64
import binascii
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..errors import (
    InvalidCredentialError,
    MalformedResponseError,
    MissingCredentialError,
    QuotaExceededError,
    RemoteError,
    TransportFailureError,
)
from ..models.settings import AspectRatio, ImageSize
from ..utils.image_utils import decode_image

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-pro-image-preview"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

DEFAULT_TIMEOUT = httpx.Timeout(connect=60.0, read=120.0, write=60.0, pool=60.0)


@dataclass
class GenerationResult:
    """Result from image generation."""

    image_bytes: bytes
    prompt_used: str
    model: str
    generation_time: float


class GeminiService:
    """Client for the Gemini `generateContent` image endpoint."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ):
        """
        Initialize Gemini service.

        Args:
            model: Model to use for generation
            base_url: API root, without trailing slash
            client: Optional pre-configured HTTP client (tests inject a mock transport)
            timeout: Timeouts used when the client is created lazily
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_payload(
        self,
        prompt: str,
        reference_png: bytes,
        aspect_ratio: AspectRatio,
        image_size: ImageSize,
    ) -> dict[str, Any]:
        """Request body for a prompt plus one inline PNG reference."""
        return {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": "image/png",
                                "data": base64.b64encode(reference_png).decode("ascii"),
                            }
                        },
                    ]
                }
            ],
            "generation_config": {
                "response_modalities": ["TEXT", "IMAGE"],
                "image_config": {
                    "aspect_ratio": aspect_ratio.value,
                    "image_size": image_size.value,
                },
            },
        }

    async def generate_image(
        self,
        api_key: str,
        prompt: str,
        reference_png: bytes,
        aspect_ratio: AspectRatio = AspectRatio.RATIO_16_9,
        image_size: ImageSize = ImageSize.SIZE_2K,
    ) -> GenerationResult:
        """
        Generate an image from a prompt and a reference map image.

        Args:
            api_key: Gemini API key
            prompt: Full prompt text
            reference_png: PNG-encoded reference image
            aspect_ratio: Requested output aspect ratio
            image_size: Requested output resolution tier

        Returns:
            GenerationResult with the decoded image bytes

        Raises:
            GenerationError: Subclass describing the failure
        """
        if not api_key or not api_key.strip():
            raise MissingCredentialError()

        payload = self.build_payload(prompt, reference_png, aspect_ratio, image_size)
        start_time = time.time()

        logger.info(
            "Requesting %s image from %s (%s, %d byte reference)",
            image_size.value, self.model, aspect_ratio.value, len(reference_png),
        )
        try:
            response = await self.client.post(
                self.endpoint,
                json=payload,
                headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
            )
        except httpx.TransportError as e:
            raise TransportFailureError(f"Network error: {e}") from e

        if not response.is_success:
            self._raise_for_error(response)

        image_bytes = self._extract_image_from_response(response)
        generation_time = time.time() - start_time
        logger.info("Generated %d byte image in %.1fs", len(image_bytes), generation_time)

        return GenerationResult(
            image_bytes=image_bytes,
            prompt_used=prompt,
            model=self.model,
            generation_time=generation_time,
        )

    def _raise_for_error(self, response: httpx.Response) -> None:
        """Translate a non-2xx response into a typed error."""
        body = response.text or "Unknown error"
        message = body
        try:
            error = response.json().get("error")
            if isinstance(error, dict) and error.get("message"):
                message = str(error["message"])
        except (ValueError, AttributeError):
            pass

        logger.warning("Gemini returned HTTP %d: %s", response.status_code, message)

        if response.status_code == 429 or "quota" in message.lower():
            raise QuotaExceededError()
        if response.status_code in (401, 403) or (response.status_code == 400 and "API key" in message):
            raise InvalidCredentialError()
        raise RemoteError(message)

    def _extract_image_from_response(self, response: httpx.Response) -> bytes:
        """Extract the first inline image from a generateContent response.

        The REST API answers with camelCase keys (`inlineData`); snake_case is
        accepted as well.
        """
        if not response.content:
            raise MalformedResponseError("Empty response")
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError("Response is not valid JSON") from e

        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not isinstance(candidates, list):
            raise MalformedResponseError("No candidates in response")
        if len(candidates) == 0:
            raise MalformedResponseError("Empty candidates array")

        candidate = candidates[0]
        content = candidate.get("content") if isinstance(candidate, dict) else None
        if not isinstance(content, dict):
            raise MalformedResponseError("No content in candidate")

        parts = content.get("parts")
        if not isinstance(parts, list):
            raise MalformedResponseError("No parts in content")

        # Parts that are not objects carry no image
        for part in parts:
            if not isinstance(part, dict):
                continue
            inline_data = part.get("inlineData") or part.get("inline_data")
            if isinstance(inline_data, dict) and inline_data.get("data"):
                try:
                    image_bytes = base64.b64decode(inline_data["data"])
                    decode_image(image_bytes)
                except (binascii.Error, ValueError) as e:
                    raise MalformedResponseError("Failed to decode image") from e
                return image_bytes

        raise MalformedResponseError("No image was generated")
