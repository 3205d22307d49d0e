"""Domain types shared by the request builder, provider client and batch runner.

Inputs (:class:`UploadedImage`, :class:`GenerationOptions`,
:class:`GenerationRequest`) are frozen dataclasses: they are built once per
request and never mutated.

Outputs are Pydantic models because they travel back to the browser as JSON.
They serialise with camelCase keys (``mimeType``, ``errorType``...) and omit
optional fields that are unset, which is the shape the front-end expects::

    {"success": true, "image": {"mimeType": "image/png", "data": "..."}, "text": ""}
    {"success": false, "error": "...", "errorType": "SAFETY_BLOCK", "blockReason": "SAFETY"}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


@dataclass(frozen=True, slots=True)
class UploadedImage:
    """One uploaded file held in memory for the duration of a request."""

    mime_type: str
    data: bytes
    filename: str


@dataclass(frozen=True, slots=True)
class GenerationOptions:
    """User-supplied form options shared by every item of a request."""

    aspect_ratio: str = "9:16"
    image_size: str = "2K"
    prompt: str | None = None


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Everything needed for one provider call.

    ``images`` holds the face reference(s) first and the target image last.
    """

    prompt_text: str
    images: tuple[UploadedImage, ...]
    aspect_ratio: str
    image_size: str

    @property
    def target(self) -> UploadedImage:
        return self.images[-1]


class ErrorKind(str, Enum):
    """Machine-readable failure category reported to the client."""

    API_ERROR = "API_ERROR"
    SAFETY_BLOCK = "SAFETY_BLOCK"
    NO_CANDIDATES = "NO_CANDIDATES"
    NO_IMAGE = "NO_IMAGE"
    IMAGE_FILTERED = "IMAGE_FILTERED"
    EXCEPTION = "EXCEPTION"


class _ResultModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_response(self) -> dict:
        """Return the JSON-ready camelCase dictionary for this result."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class GeneratedImage(_ResultModel):
    """Base64 image payload returned by the provider."""

    mime_type: str = "image/png"
    data: str


class GenerationSuccess(_ResultModel):
    """The provider returned an image."""

    success: Literal[True] = True
    image: GeneratedImage
    text: str = ""


class GenerationFailure(_ResultModel):
    """The provider call did not produce an image.

    Attributes:
        error: Human-readable message.
        error_type: Failure category.
        error_code: Provider error code (``API_ERROR`` only).
        block_reason: Raw provider block reason (``SAFETY_BLOCK`` only).
        text: Text the model returned alongside the missing image.
    """

    success: Literal[False] = False
    error: str
    error_type: ErrorKind
    error_code: int | str | None = None
    block_reason: str | None = None
    text: str | None = None


GenerationResult = Union[GenerationSuccess, GenerationFailure]


class BatchItemResult(BaseModel):
    """Outcome of one target image inside a batch."""

    model_config = ConfigDict(frozen=True)

    index: int
    filename: str
    result: GenerationResult

    @property
    def success(self) -> bool:
        return self.result.success

    def to_response(self) -> dict:
        return {"index": self.index, "filename": self.filename, **self.result.to_response()}


class BatchSummary(BaseModel):
    """Aggregated outcome of a batch request, ordered by input index.

    ``total`` counts the non-empty target images; empty file parts are
    treated as absent and get no entry.
    """

    model_config = ConfigDict(frozen=True)

    total: int
    successful: int
    failed: int
    results: list[BatchItemResult]

    @model_validator(mode="after")
    def _check_counts(self) -> "BatchSummary":
        if len(self.results) != self.total:
            raise ValueError("results must contain exactly one entry per target image")
        if self.successful + self.failed != self.total:
            raise ValueError("successful + failed must equal total")
        return self

    @classmethod
    def from_items(cls, items: list[BatchItemResult]) -> "BatchSummary":
        """Build a summary from per-item results in any completion order."""
        ordered = sorted(items, key=lambda item: item.index)
        successful = sum(1 for item in ordered if item.success)
        return cls(
            total=len(ordered),
            successful=successful,
            failed=len(ordered) - successful,
            results=ordered,
        )

    def to_response(self) -> dict:
        return {
            "success": True,
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "results": [item.to_response() for item in self.results],
        }
