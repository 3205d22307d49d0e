"""Tests for facerelay.core.models: domain types and their JSON shape.

Tests cover:
- camelCase serialisation of success and failure results.
- Omission of unset optional failure fields.
- BatchSummary ordering and count invariants.
- Immutability of request-side dataclasses.
"""

from __future__ import annotations

import dataclasses

import pytest
from pydantic import ValidationError

from facerelay.core.models import (
    BatchItemResult,
    BatchSummary,
    ErrorKind,
    GeneratedImage,
    GenerationFailure,
    GenerationRequest,
    GenerationSuccess,
    UploadedImage,
)


def _success() -> GenerationSuccess:
    return GenerationSuccess(image=GeneratedImage(mime_type="image/jpeg", data="abc"), text="hi")


def _failure() -> GenerationFailure:
    return GenerationFailure(error="nope", error_type=ErrorKind.NO_IMAGE, text="")


class TestResultSerialisation:
    """Test to_response() output of generation results."""

    def test_success_shape(self):
        """Success bodies carry success, image (camelCase) and text."""
        assert _success().to_response() == {
            "success": True,
            "image": {"mimeType": "image/jpeg", "data": "abc"},
            "text": "hi",
        }

    def test_failure_omits_unset_fields(self):
        """Unset errorCode and blockReason are left out of the body."""
        body = GenerationFailure(error="x", error_type=ErrorKind.NO_CANDIDATES).to_response()
        assert body == {"success": False, "error": "x", "errorType": "NO_CANDIDATES"}

    def test_failure_includes_provider_fields(self):
        """errorCode and blockReason use camelCase keys when set."""
        body = GenerationFailure(
            error="bad",
            error_type=ErrorKind.API_ERROR,
            error_code=400,
        ).to_response()
        assert body["errorCode"] == 400
        assert body["errorType"] == "API_ERROR"

    def test_failure_keeps_empty_text(self):
        """An empty accompanying text is still reported."""
        assert _failure().to_response()["text"] == ""

    def test_image_mime_type_default(self):
        """GeneratedImage defaults to image/png."""
        assert GeneratedImage(data="abc").mime_type == "image/png"


class TestBatchSummary:
    """Test BatchSummary aggregation."""

    def test_from_items_orders_by_index(self):
        """Items supplied out of order are sorted by their input index."""
        items = [
            BatchItemResult(index=2, filename="c.png", result=_success()),
            BatchItemResult(index=0, filename="a.png", result=_failure()),
            BatchItemResult(index=1, filename="b.png", result=_success()),
        ]
        summary = BatchSummary.from_items(items)
        assert [item.index for item in summary.results] == [0, 1, 2]
        assert summary.total == 3
        assert summary.successful == 2
        assert summary.failed == 1

    def test_empty_batch(self):
        """An empty item list yields an all-zero summary."""
        summary = BatchSummary.from_items([])
        assert (summary.total, summary.successful, summary.failed) == (0, 0, 0)

    def test_count_invariant_enforced(self):
        """Counts that do not add up to total are rejected."""
        with pytest.raises(ValidationError):
            BatchSummary(total=2, successful=2, failed=1, results=[])

    def test_response_flattens_items(self):
        """Each result entry merges index, filename and the result fields."""
        summary = BatchSummary.from_items(
            [BatchItemResult(index=0, filename="a.png", result=_success())]
        )
        body = summary.to_response()
        assert body["success"] is True
        assert body["results"][0] == {
            "index": 0,
            "filename": "a.png",
            "success": True,
            "image": {"mimeType": "image/jpeg", "data": "abc"},
            "text": "hi",
        }


class TestRequestTypes:
    """Test the frozen request-side dataclasses."""

    def test_uploaded_image_is_frozen(self):
        image = UploadedImage(mime_type="image/png", data=b"x", filename="a.png")
        with pytest.raises(dataclasses.FrozenInstanceError):
            image.filename = "b.png"

    def test_request_target_is_last_image(self):
        """The target is always the last image of the request."""
        face = UploadedImage(mime_type="image/png", data=b"f", filename="face.png")
        target = UploadedImage(mime_type="image/png", data=b"t", filename="target.png")
        request = GenerationRequest(
            prompt_text="p", images=(face, target), aspect_ratio="1:1", image_size="1K"
        )
        assert request.target is target
