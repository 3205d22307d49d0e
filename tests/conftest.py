"""Shared pytest fixtures for facerelay tests."""

from __future__ import annotations

import json
import shutil
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from facerelay.api.main import create_app
from facerelay.core.config import FaceRelayConfig

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x01" * 32


def image_response(
    data: str = "R0VORVJBVEVE",
    mime_type: str | None = "image/png",
    text: str = "",
) -> dict:
    """Build a successful ``generateContent`` body with one inline image.

    Args:
        data: Base64 payload of the generated image.
        mime_type: Image MIME type, or ``None`` to omit it.
        text: Optional text part placed before the image.

    Returns:
        Decoded JSON body as the provider would send it.
    """
    inline: dict = {"data": data}
    if mime_type is not None:
        inline["mimeType"] = mime_type
    parts: list[dict] = []
    if text:
        parts.append({"text": text})
    parts.append({"inlineData": inline})
    return {"candidates": [{"content": {"parts": parts}}]}


class FakeProvider:
    """Stand-in for the Gemini endpoint built on :class:`httpx.MockTransport`.

    Every request is recorded in :attr:`requests`.  Responses come from
    :attr:`handler`, which defaults to a single successful image.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json=image_response())
        )
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def respond_with(self, status_code: int, body: dict) -> None:
        self.handler = lambda request: httpx.Response(status_code, json=body)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def payloads(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


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
def test_config(temp_dir: Path) -> FaceRelayConfig:
    """Create a test configuration with a fake API key and no front-end.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        FaceRelayConfig instance for testing
    """
    return FaceRelayConfig(
        _env_file=None,
        gemini_api_key="test-key",
        gemini_api_base="https://provider.test/v1beta",
        gemini_model="test-image-model",
        static_dir=temp_dir / "public",
        batch_concurrency=3,
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def test_client(
    test_config: FaceRelayConfig, fake_provider: FakeProvider
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the fake provider.

    The client is used as a context manager so that the lifespan handler
    opens and closes the provider client.
    """
    app = create_app(test_config, transport=fake_provider.transport)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def keyless_client(
    test_config: FaceRelayConfig, fake_provider: FakeProvider
) -> Generator[TestClient, None, None]:
    """TestClient for an application without ``GEMINI_API_KEY``."""
    config = test_config.model_copy(update={"gemini_api_key": None})
    app = create_app(config, transport=fake_provider.transport)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_image_response() -> Callable[..., dict]:
    """Factory for successful provider bodies (see :func:`image_response`)."""
    return image_response


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG_BYTES
