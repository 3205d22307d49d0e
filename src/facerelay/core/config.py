"""Configuration management for the facerelay service.

This module provides centralized configuration management using Pydantic Settings.
Values are loaded from environment variables (no prefix, so the conventional
``GEMINI_API_KEY`` and ``PORT`` variables map directly onto fields), allowing
easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables
2. .env file in the working directory
3. Default values defined in FaceRelayConfig

Example .env file:
    GEMINI_API_KEY=...
    PORT=3000
    BATCH_CONCURRENCY=3
    REQUEST_TIMEOUT=180

Explicit Configuration
----------------------
There is no module-level configuration instance.  A single
:class:`FaceRelayConfig` is built by :func:`facerelay.api.main.main` at
process start and handed to :func:`facerelay.api.main.create_app`, which
passes it on to the provider client.  Tests construct their own instances.

Usage Example
-------------
    from facerelay.core.config import FaceRelayConfig

    config = FaceRelayConfig()
    print(config.has_api_key)
    print(config.endpoint_url)
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024


class FaceRelayConfig(BaseSettings):
    """Main configuration for the facerelay service.

    Attributes
    ----------
    Provider Settings:
        gemini_api_key : str | None
            Gemini API key.  Generation endpoints answer 500 while unset.
        gemini_api_base : str
            Base URL of the Generative Language REST API
        gemini_model : str
            Image-capable model used for every generation call
        request_timeout : float
            Seconds to wait for a single provider call

    Upload Limits:
        max_upload_bytes : int
            Per-file size cap (20 MiB)
        max_batch_images : int
            Maximum number of target images in one batch request

    Batch Settings:
        batch_concurrency : int
            Maximum number of provider calls in flight for one batch

    Server Settings:
        host : str
            Server bind address
        port : int
            Server port
        static_dir : Path
            Directory with the browser front-end (mounted only if it exists)
        log_level : str
            Root logging level used by the CLI entry point
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider settings
    gemini_api_key: str | None = Field(
        default=None,
        description="Gemini API key (GEMINI_API_KEY)",
    )
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language REST API",
    )
    gemini_model: str = Field(
        default="gemini-3-pro-image-preview",
        description="Model used for image generation",
    )
    request_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Timeout in seconds for a single provider call",
    )

    # Upload limits
    max_upload_bytes: int = Field(
        default=20 * MIB,
        ge=1,
        description="Maximum size of a single uploaded file in bytes",
    )
    max_batch_images: int = Field(
        default=10,
        ge=1,
        description="Maximum number of target images per batch request",
    )

    # Batch settings
    batch_concurrency: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum concurrent provider calls per batch",
    )

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Server port",
    )
    static_dir: Path = Field(
        default=Path("public"),
        description="Directory served as the browser front-end",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level for the CLI entry point",
    )

    @property
    def has_api_key(self) -> bool:
        """Whether a non-empty provider key is configured."""
        return bool(self.gemini_api_key)

    @property
    def max_request_bytes(self) -> int:
        """Largest multipart body accepted: two face refs plus a full batch."""
        return self.max_upload_bytes * (self.max_batch_images + 2) + MIB

    @property
    def endpoint_url(self) -> str:
        """Full ``generateContent`` URL for the configured model."""
        return f"{self.gemini_api_base.rstrip('/')}/models/{self.gemini_model}:generateContent"
