"""Async client for the Gemini ``generateContent`` endpoint.

:class:`GeminiClient` performs exactly one HTTP POST per call and turns the
raw response into a :class:`~facerelay.core.models.GenerationResult`.  The
classification itself lives in :func:`classify_response`, a pure function of
the HTTP status and decoded JSON body, checked in this order:

1. Non-2xx status → ``API_ERROR``.
2. ``promptFeedback.blockReason`` present → ``SAFETY_BLOCK``.
3. No candidates → ``NO_CANDIDATES``.
4. No inline image in the first candidate → ``IMAGE_FILTERED`` when the
   returned text mentions a policy violation, otherwise ``NO_IMAGE``.
5. Otherwise → success.

Network errors and undecodable bodies are *not* caught here.  Callers turn
them into ``EXCEPTION`` failures (see :mod:`facerelay.core.batch`).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from facerelay.core.config import FaceRelayConfig
from facerelay.core.models import (
    ErrorKind,
    GeneratedImage,
    GenerationFailure,
    GenerationResult,
    GenerationSuccess,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-goog-api-key"
DEFAULT_IMAGE_MIME_TYPE = "image/png"

BLOCK_REASON_MESSAGES: dict[str, str] = {
    "SAFETY": "Content blocked due to safety filters (potentially inappropriate content detected)",
    "OTHER": "Content blocked by policy filters (try different images or rephrase prompt)",
    "BLOCKLIST": "Content contains blocked terms",
    "PROHIBITED_CONTENT": "Content violates usage policy",
}

_FILTER_MARKERS = ("violated", "policy")


def block_reason_message(block_reason: str) -> str:
    """Return the human-readable message for a provider block reason."""
    return BLOCK_REASON_MESSAGES.get(block_reason, f"Blocked: {block_reason}")


def _inline_data(part: dict) -> dict | None:
    # The REST API answers in camelCase but also accepts and sometimes echoes snake_case.
    inline = part.get("inlineData") or part.get("inline_data")
    if isinstance(inline, dict) and inline.get("data"):
        return inline
    return None


def classify_response(status_code: int, data: Any) -> GenerationResult:
    """Classify a decoded ``generateContent`` response.

    Args:
        status_code: HTTP status of the provider response.
        data: Decoded JSON body.

    Returns:
        A :class:`GenerationSuccess` or a typed :class:`GenerationFailure`.
    """
    if not isinstance(data, dict):
        data = {}

    if not 200 <= status_code < 300:
        error = data.get("error")
        if not isinstance(error, dict):
            error = {}
        return GenerationFailure(
            error=error.get("message") or "API request failed",
            error_type=ErrorKind.API_ERROR,
            error_code=error.get("code"),
        )

    block_reason = (data.get("promptFeedback") or {}).get("blockReason")
    if block_reason:
        return GenerationFailure(
            error=block_reason_message(block_reason),
            error_type=ErrorKind.SAFETY_BLOCK,
            block_reason=block_reason,
        )

    candidates = data.get("candidates") or []
    if not candidates:
        return GenerationFailure(
            error="No image generated - request may have been filtered",
            error_type=ErrorKind.NO_CANDIDATES,
        )

    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = ""
    image: GeneratedImage | None = None
    for part in parts:
        if part.get("text"):
            text += part["text"]
        inline = _inline_data(part)
        if inline is not None and image is None:
            image = GeneratedImage(
                mime_type=inline.get("mimeType") or inline.get("mime_type") or DEFAULT_IMAGE_MIME_TYPE,
                data=inline["data"],
            )

    if image is None:
        if any(marker in text for marker in _FILTER_MARKERS):
            return GenerationFailure(
                error="Generated image was filtered due to policy violation",
                error_type=ErrorKind.IMAGE_FILTERED,
                text=text,
            )
        return GenerationFailure(
            error="No image in response",
            error_type=ErrorKind.NO_IMAGE,
            text=text,
        )

    return GenerationSuccess(image=image, text=text)


class GeminiClient:
    """Thin async wrapper around one ``generateContent`` endpoint.

    The underlying :class:`httpx.AsyncClient` is shared by every call made
    through this instance; close it with :meth:`aclose` or use the client as
    an async context manager.

    Args:
        config: Supplies the endpoint URL and request timeout.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        config: FaceRelayConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = config.endpoint_url
        self._http = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(config.request_timeout),
            transport=transport,
        )

    @property
    def url(self) -> str:
        return self._url

    async def generate(self, api_key: str, payload: dict) -> GenerationResult:
        """POST ``payload`` to the provider and classify the response.

        Raises:
            httpx.HTTPError: On network failure or timeout.
            ValueError: If the response body is not valid JSON.
        """
        response = await self._http.post(
            self._url,
            json=payload,
            headers={API_KEY_HEADER: api_key},
        )
        data = response.json()
        result = classify_response(response.status_code, data)
        if not result.success:
            logger.debug(f"Provider call failed ({response.status_code}): {result.error}")
        return result

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()
