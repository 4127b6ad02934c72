"""
Vision Model and Backend Clients.

Thin httpx wrappers for the two ways an image gets turned into
readings: asking the OpenAI chat-completions API directly, or
forwarding the photo to the clinical backend's extraction endpoint.
Both raise typed errors on non-success statuses and never retry.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Optional

import httpx

from medireader.config import Settings
from medireader.errors import (
    ApiKeyMissingError,
    BackendForwardError,
    ExtractionCallError,
    MalformedOutputError,
)
from medireader.logging_config import get_logger

logger = get_logger(__name__)

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def to_data_url(image: str) -> str:
    """Wrap a bare base64 payload in a JPEG data URL."""
    return image if image.startswith("data:") else f"{DATA_URL_PREFIX}{image}"


def to_image_bytes(image: str) -> bytes:
    """Decode a base64 payload or data URL back into raw bytes."""
    payload = image.split(",", 1)[1] if image.startswith("data:") else image
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Image is not valid base64: {e}") from e


def encode_image(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _error_message(response: httpx.Response) -> str:
    """Prefer the API's own error message over the raw body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text


class VisionClient:
    """
    OpenAI chat-completions client for image + prompt requests.

    Args:
        settings: Application settings (API key, model, limits).
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def model(self) -> str:
        return self._settings.vision_model

    async def complete(
        self,
        image: str,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        purpose: str = "image processing",
    ) -> str:
        """
        Send one image with one prompt and return the reply text.

        Raises:
            ApiKeyMissingError: no OpenAI key is configured.
            ExtractionCallError: the API answered with a non-2xx status.
            MalformedOutputError: a 2xx reply carried no chat completion.
        """
        settings = self._settings
        if not settings.openai_api_key:
            raise ApiKeyMissingError(purpose)

        body = {
            "model": settings.vision_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": to_data_url(image), "detail": "high"},
                        },
                    ],
                }
            ],
            "max_tokens": max_tokens if max_tokens is not None else settings.vision_max_tokens,
            "temperature": temperature if temperature is not None else settings.vision_temperature,
        }

        async with httpx.AsyncClient(
            timeout=settings.vision_timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.post(
                f"{settings.openai_base_url.rstrip('/')}/chat/completions",
                headers={
                    "Authorization": f"Bearer {settings.openai_api_key}",
                    "Content-Type": "application/json",
                },
                json=body,
            )

        if not response.is_success:
            message = _error_message(response)
            logger.error(
                "vision_call_failed",
                status=response.status_code,
                purpose=purpose,
                response=message[:200],
            )
            raise ExtractionCallError(response.status_code, message)

        try:
            content = response.json()["choices"][0]["message"].get("content") or ""
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error(
                "vision_reply_unexpected_body",
                purpose=purpose,
                error=str(e),
                response=response.text[:200],
            )
            raise MalformedOutputError("Invalid JSON response from OpenAI API", response.text)

        logger.debug("vision_call_complete", purpose=purpose, response_length=len(content))
        return content


class BackendExtractionClient:
    """Forwards a raw photo to the clinical backend's extraction endpoint."""

    def __init__(
        self,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def forward(
        self,
        url: str,
        image: str,
        fields: dict[str, str],
    ) -> dict[str, Any]:
        """
        POST the image as multipart form data and return the JSON reply.

        Raises:
            BackendForwardError: the backend answered with a non-2xx status.
        """
        files = {"image": ("upload.jpg", to_image_bytes(image), "image/jpeg")}

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(url, data=fields, files=files)

        if not response.is_success:
            logger.error("backend_forward_failed", url=url, status=response.status_code)
            raise BackendForwardError(response.status_code, response.text)

        return response.json()
