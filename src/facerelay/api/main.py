"""facerelay: FastAPI Application.

This module defines the application factory, all REST API routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
The application is stateless between requests:

- **Configuration** is a :class:`~facerelay.core.config.FaceRelayConfig`
  built once in :func:`main` and passed to :func:`create_app`.  Routes read
  it from ``app.state``; nothing looks up the environment at request time.
- **Provider calls** go through a single
  :class:`~facerelay.core.gemini_client.GeminiClient` opened by the lifespan
  handler and closed on shutdown.
- **Uploads** are held in memory for the duration of the request only.
- **The browser front-end** is served from ``static_dir`` by FastAPI's
  ``StaticFiles`` when that directory exists.

Endpoints
---------
========  ==========================  ======================================
Method    Path                        Purpose
========  ==========================  ======================================
GET       ``/api/health``             Liveness and API-key presence
POST      ``/api/generate``           One target image
POST      ``/api/generate-batch``     Up to ``max_batch_images`` targets
========  ==========================  ======================================

Usage
-----
CLI (installed entry point)::

    facerelay

Direct invocation::

    python -m facerelay.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from facerelay import __version__
from facerelay.api.models import ErrorResponse, HealthResponse
from facerelay.api.uploads import (
    MISSING_BATCH_MESSAGE,
    MISSING_SINGLE_MESSAGE,
    collect_batch,
    collect_single,
)
from facerelay.core.batch import run_batch
from facerelay.core.config import FaceRelayConfig
from facerelay.core.errors import (
    ConfigurationError,
    FaceRelayError,
    UploadTooLargeError,
    UploadValidationError,
)
from facerelay.core.gemini_client import GeminiClient
from facerelay.core.models import GenerationOptions
from facerelay.core.request_builder import build_payload, build_request

logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = "9:16"
DEFAULT_IMAGE_QUALITY = "2K"

MISSING_API_KEY_MESSAGE = "GEMINI_API_KEY not configured"

# A file field sent as a plain text part fails form validation; the routes
# report it the same way as a missing upload.
_MISSING_UPLOAD_MESSAGES = {
    "/api/generate": MISSING_SINGLE_MESSAGE,
    "/api/generate-batch": MISSING_BATCH_MESSAGE,
}

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


def get_config(request: Request) -> FaceRelayConfig:
    return request.app.state.config


def get_client(request: Request) -> GeminiClient:
    return request.app.state.gemini_client


def _require_api_key(config: FaceRelayConfig) -> str:
    """Return the provider key or raise :class:`ConfigurationError`."""
    if not config.gemini_api_key:
        raise ConfigurationError(MISSING_API_KEY_MESSAGE)
    return config.gemini_api_key


def _server_error(exc: Exception, **extra: str) -> JSONResponse:
    body = ErrorResponse(error="Server error", message=str(exc), **extra)
    return JSONResponse(status_code=500, content=body.to_response())


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.get("/api/health", response_model=HealthResponse)
async def health(config: FaceRelayConfig = Depends(get_config)) -> HealthResponse:
    """Report liveness and whether ``GEMINI_API_KEY`` is configured."""
    return HealthResponse(has_api_key=config.has_api_key)


@router.post("/api/generate")
async def generate_image(
    face_ref1: UploadFile | None = File(default=None, alias="faceRef1"),
    face_ref2: UploadFile | None = File(default=None, alias="faceRef2"),
    target_image: UploadFile | None = File(default=None, alias="targetImage"),
    aspect_ratio: str = Form(default=DEFAULT_ASPECT_RATIO, alias="aspectRatio"),
    image_quality: str = Form(default=DEFAULT_IMAGE_QUALITY, alias="imageQuality"),
    prompt: str | None = Form(default=None),
    config: FaceRelayConfig = Depends(get_config),
    client: GeminiClient = Depends(get_client),
) -> JSONResponse:
    """Render the face reference(s) into a single target image.

    Returns:
        200 with the success body, or 400 with the provider failure body.

    Raises:
        ConfigurationError: 500 when no API key is configured.
        UploadValidationError: 400 when ``faceRef1`` or ``targetImage`` is missing.
        UploadTooLargeError: 413 when a file exceeds the upload limit.
    """
    api_key = _require_api_key(config)
    try:
        intake = await collect_single(
            face_ref1, face_ref2, target_image, max_bytes=config.max_upload_bytes
        )
        options = GenerationOptions(
            aspect_ratio=aspect_ratio, image_size=image_quality, prompt=prompt
        )
        request = build_request(intake.face_refs, intake.targets[0], options)

        logger.info(f"Processing single request ({len(intake.face_refs)} face reference(s))")
        result = await client.generate(api_key, build_payload(request))
    except FaceRelayError:
        raise
    except Exception as e:
        logger.error(f"Single generation failed: {e}", exc_info=True)
        return _server_error(e, error_type="EXCEPTION")

    if not result.success:
        logger.info(f"Single request failed ({result.error_type.value}): {result.error}")
        return JSONResponse(status_code=400, content=result.to_response())
    return JSONResponse(content=result.to_response())


@router.post("/api/generate-batch")
async def generate_batch(
    face_ref1: UploadFile | None = File(default=None, alias="faceRef1"),
    face_ref2: UploadFile | None = File(default=None, alias="faceRef2"),
    target_images: list[UploadFile] | None = File(default=None, alias="targetImages"),
    aspect_ratio: str = Form(default=DEFAULT_ASPECT_RATIO, alias="aspectRatio"),
    image_quality: str = Form(default=DEFAULT_IMAGE_QUALITY, alias="imageQuality"),
    prompt: str | None = Form(default=None),
    config: FaceRelayConfig = Depends(get_config),
    client: GeminiClient = Depends(get_client),
) -> JSONResponse:
    """Render the face reference(s) into every uploaded target image.

    Individual failures are reported per item; the HTTP call itself succeeds
    whenever the uploads are valid.

    Returns:
        200 with the batch summary.

    Raises:
        ConfigurationError: 500 when no API key is configured.
        UploadValidationError: 400 for missing uploads or too many targets.
        UploadTooLargeError: 413 when a file exceeds the upload limit.
    """
    api_key = _require_api_key(config)
    try:
        intake = await collect_batch(
            face_ref1,
            face_ref2,
            target_images,
            max_bytes=config.max_upload_bytes,
            max_targets=config.max_batch_images,
        )
        options = GenerationOptions(
            aspect_ratio=aspect_ratio, image_size=image_quality, prompt=prompt
        )

        logger.info(f"Batch request: {len(intake.targets)} target image(s)")
        summary = await run_batch(
            client,
            api_key,
            intake.face_refs,
            intake.targets,
            options,
            concurrency=config.batch_concurrency,
        )
    except FaceRelayError:
        raise
    except Exception as e:
        logger.error(f"Batch generation failed: {e}", exc_info=True)
        return _server_error(e)

    return JSONResponse(content=summary.to_response())


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


async def _handle_local_error(request: Request, exc: FaceRelayError) -> JSONResponse:
    """Render a :class:`FaceRelayError` as ``{"error": message}``."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).to_response(),
    )


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render a form validation failure as a missing upload (400).

    The API-key check still comes first, as it does inside the routes.
    """
    logger.debug(f"{request.method} {request.url.path} validation errors: {exc.errors()}")
    if not request.app.state.config.has_api_key:
        return await _handle_local_error(request, ConfigurationError(MISSING_API_KEY_MESSAGE))
    message = _MISSING_UPLOAD_MESSAGES.get(request.url.path, "Invalid request")
    return await _handle_local_error(request, UploadValidationError(message))


def create_app(
    config: FaceRelayConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application for ``config``.

    Args:
        config: Explicit service configuration.
        transport: Optional httpx transport for the provider client (tests
            pass an ``httpx.MockTransport``).

    Returns:
        A ready-to-serve :class:`FastAPI` instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.gemini_client = GeminiClient(config, transport=transport)
        logger.info(f"Provider client ready ({app.state.gemini_client.url})")

        yield

        await app.state.gemini_client.aclose()
        logger.info("Provider client closed on shutdown.")

    app = FastAPI(
        title="facerelay",
        description="Face reference relay for the Gemini image generation API.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        # Rejects oversized bodies before Starlette spools the multipart parts.
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > config.max_request_bytes:
            error = UploadTooLargeError(
                f"Request body exceeds the {config.max_request_bytes} byte limit"
            )
            return await _handle_local_error(request, error)
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(FaceRelayError, _handle_local_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.include_router(router)

    # Mounted last so the API routes take precedence over the catch-all.
    if config.static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(config.static_dir), html=True), name="static")
    else:
        logger.info(f"Static directory {config.static_dir} not found; front-end not served.")

    return app


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Loads :class:`FaceRelayConfig` from the environment (and ``.env``),
    configures logging and serves the application on ``host:port``
    (``0.0.0.0:3000`` by default).

    This function is registered as the ``facerelay`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    config = FaceRelayConfig()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(f"Server running on http://localhost:{config.port}")
    logger.info(f"API Key configured: {config.has_api_key}")

    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
