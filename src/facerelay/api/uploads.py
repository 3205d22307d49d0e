"""Multipart upload intake for the generation endpoints.

Uploaded files are read fully into memory (they are forwarded to the
provider as base64 anyway) and wrapped in
:class:`~facerelay.core.models.UploadedImage`.  Nothing is written to disk.

Validation rules:

- ``faceRef1`` is required, ``faceRef2`` is optional.
- The single endpoint needs exactly one ``targetImage``; the batch endpoint
  needs between one and ``max_batch_images`` ``targetImages``.
- Each file is capped at ``max_upload_bytes``; at most ``max_bytes + 1``
  bytes are read before an oversized file is rejected.
- A file field submitted without content (an empty browser file input)
  counts as missing.  In a batch it is dropped before indexing, so result
  indices run over the non-empty targets only.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from fastapi import UploadFile

from facerelay.core.errors import UploadTooLargeError, UploadValidationError
from facerelay.core.models import UploadedImage

FALLBACK_MIME_TYPE = "application/octet-stream"

MISSING_SINGLE_MESSAGE = "At least one face reference and a target image are required"
MISSING_BATCH_MESSAGE = "At least one face reference and one target image are required"


@dataclass(frozen=True, slots=True)
class IntakeResult:
    """Validated uploads for one request."""

    face_refs: tuple[UploadedImage, ...]
    targets: tuple[UploadedImage, ...]


async def read_upload(
    upload: UploadFile | None,
    *,
    field: str,
    max_bytes: int,
) -> UploadedImage | None:
    """Read one multipart file into memory.

    Args:
        upload: The file part, or ``None`` when the field was not sent.
        field: Form field name, used as filename fallback and in errors.
        max_bytes: Size cap for this file.

    Returns:
        The in-memory image, or ``None`` when the field is absent or empty.

    Raises:
        UploadTooLargeError: If the file exceeds ``max_bytes``.
    """
    if upload is None:
        return None
    try:
        data = await upload.read(max_bytes + 1)
    finally:
        await upload.close()
    if len(data) > max_bytes:
        raise UploadTooLargeError(
            f"File '{upload.filename or field}' exceeds the {max_bytes} byte upload limit"
        )
    if not data:
        return None
    return UploadedImage(
        mime_type=upload.content_type or FALLBACK_MIME_TYPE,
        data=data,
        filename=upload.filename or field,
    )


async def _read_face_refs(
    face_ref1: UploadFile | None,
    face_ref2: UploadFile | None,
    max_bytes: int,
) -> tuple[UploadedImage, ...]:
    primary = await read_upload(face_ref1, field="faceRef1", max_bytes=max_bytes)
    secondary = await read_upload(face_ref2, field="faceRef2", max_bytes=max_bytes)
    if primary is None:
        return ()
    return (primary,) if secondary is None else (primary, secondary)


async def collect_single(
    face_ref1: UploadFile | None,
    face_ref2: UploadFile | None,
    target_image: UploadFile | None,
    *,
    max_bytes: int,
) -> IntakeResult:
    """Validate the uploads of ``POST /api/generate``."""
    face_refs = await _read_face_refs(face_ref1, face_ref2, max_bytes)
    target = await read_upload(target_image, field="targetImage", max_bytes=max_bytes)
    if not face_refs or target is None:
        raise UploadValidationError(MISSING_SINGLE_MESSAGE)
    return IntakeResult(face_refs=face_refs, targets=(target,))


async def collect_batch(
    face_ref1: UploadFile | None,
    face_ref2: UploadFile | None,
    target_images: Sequence[UploadFile] | None,
    *,
    max_bytes: int,
    max_targets: int,
) -> IntakeResult:
    """Validate the uploads of ``POST /api/generate-batch``."""
    uploads = list(target_images or [])
    if len(uploads) > max_targets:
        raise UploadValidationError(f"At most {max_targets} target images are allowed per batch")

    face_refs = await _read_face_refs(face_ref1, face_ref2, max_bytes)
    targets: list[UploadedImage] = []
    for upload in uploads:
        image = await read_upload(upload, field="targetImages", max_bytes=max_bytes)
        if image is not None:
            targets.append(image)

    if not face_refs or not targets:
        raise UploadValidationError(MISSING_BATCH_MESSAGE)
    return IntakeResult(face_refs=face_refs, targets=tuple(targets))
