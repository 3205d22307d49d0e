"""Per-target fan-out for batch generation requests.

Every target image becomes one independent provider call.  Calls run
concurrently, bounded by an :class:`asyncio.Semaphore`, so a batch of ten
images never opens more than ``concurrency`` provider connections at once.

A failed item never aborts the batch: provider failures are already values,
and unexpected exceptions are converted to ``EXCEPTION`` failures by
:func:`generate_one`.  Results are re-ordered by input index before the
summary is built, so completion order is never observable.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from facerelay.core.gemini_client import GeminiClient
from facerelay.core.models import (
    BatchItemResult,
    BatchSummary,
    ErrorKind,
    GenerationFailure,
    GenerationOptions,
    GenerationRequest,
    GenerationResult,
    UploadedImage,
)
from facerelay.core.request_builder import build_payload, build_request

logger = logging.getLogger(__name__)


async def generate_one(
    client: GeminiClient,
    api_key: str,
    request: GenerationRequest,
) -> GenerationResult:
    """Run one provider call, reporting any exception as an ``EXCEPTION`` failure."""
    try:
        return await client.generate(api_key, build_payload(request))
    except Exception as e:
        logger.warning(f"Provider call for {request.target.filename} raised: {e}", exc_info=True)
        return GenerationFailure(error=str(e) or type(e).__name__, error_type=ErrorKind.EXCEPTION)


def _describe(result: GenerationResult) -> str:
    if result.success:
        return "success"
    return f"failed ({result.error_type.value}): {result.error}"


async def run_batch(
    client: GeminiClient,
    api_key: str,
    face_refs: Sequence[UploadedImage],
    targets: Sequence[UploadedImage],
    options: GenerationOptions,
    *,
    concurrency: int = 3,
) -> BatchSummary:
    """Generate one image per target and aggregate the outcomes.

    Args:
        client: Provider client shared by all items.
        api_key: Provider API key.
        face_refs: Face reference images, primary first.
        targets: Non-empty target images in upload order.  Empty file parts
            are dropped at intake, so ``index`` counts only the images
            passed here.
        options: Form options applied to every item.
        concurrency: Maximum number of provider calls in flight.

    Returns:
        A :class:`BatchSummary` whose ``results`` are ordered by input index.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))
    total = len(targets)

    async def _process(index: int, target: UploadedImage) -> BatchItemResult:
        request = build_request(face_refs, target, options)
        async with semaphore:
            result = await generate_one(client, api_key, request)
        logger.info(f"[{index + 1}/{total}] {target.filename}: {_describe(result)}")
        return BatchItemResult(index=index, filename=target.filename, result=result)

    logger.info(f"Processing {total} target image(s), up to {concurrency} at a time")
    items = await asyncio.gather(*(_process(i, target) for i, target in enumerate(targets)))

    summary = BatchSummary.from_items(list(items))
    logger.info(f"Batch complete: {summary.successful}/{summary.total} successful")
    return summary
