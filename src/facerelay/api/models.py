"""Pydantic response models for the facerelay API.

The generation endpoints take ``multipart/form-data`` and return the
camelCase bodies produced by :mod:`facerelay.core.models`; the models here
cover the remaining fixed-shape responses and document them in the
OpenAPI schema.

Models
------
HealthResponse
    Body of ``GET /api/health``.
ErrorResponse
    Body of every locally generated error (400, 413, 500).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(_CamelModel):
    """Response body for ``GET /api/health``.

    Attributes:
        status: Always ``"ok"`` while the process is serving.
        has_api_key: Whether ``GEMINI_API_KEY`` is configured.
    """

    status: str = Field(default="ok", description="Service status.")
    has_api_key: bool = Field(..., description="True when the provider key is configured.")


class ErrorResponse(_CamelModel):
    """Response body for local errors.

    Attributes:
        error: Human-readable error message.
        message: Exception detail for unexpected server errors.
        error_type: ``"EXCEPTION"`` for unexpected errors on ``/api/generate``.
    """

    error: str
    message: str | None = None
    error_type: str | None = None

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
