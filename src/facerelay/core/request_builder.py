"""Assembly of ``generateContent`` payloads from uploaded images.

The payload is an ordered list of parts: the instruction text first, then one
inline image part per upload.  Order matters to the model, which is told that
the *first* image(s) carry the identity and the *last* image carries the
scene::

    [text prompt]
    [face reference 1]
    [face reference 2]   (optional)
    [target image]

Aspect ratio and image size are passed through verbatim into
``generationConfig.imageConfig``.  They are not validated here; an invalid
value comes back from the provider as an ``API_ERROR``.

Usage
-----
::

    request = build_request(face_refs, target, GenerationOptions(prompt=None))
    payload = build_payload(request)
"""

from __future__ import annotations

import base64
from collections.abc import Sequence

from facerelay.core.models import GenerationOptions, GenerationRequest, UploadedImage

DEFAULT_PROMPT = (
    "Recreate this target image (the last image provided) with the person from the face "
    "reference image(s) (the first image(s) provided). \n"
    "The output should show the person from the face references in exactly the same pose, "
    "clothing, setting, expression, and lighting as shown in the target image.\n"
    "Maintain the identity and facial features from the reference photos while perfectly "
    "matching everything else from the target image.\n"
    "This is for creative/artistic purposes."
)

RESPONSE_MODALITIES = ["TEXT", "IMAGE"]


def resolve_prompt(prompt: str | None) -> str:
    """Return the trimmed user prompt, or :data:`DEFAULT_PROMPT` if blank."""
    if prompt is None:
        return DEFAULT_PROMPT
    return prompt.strip() or DEFAULT_PROMPT


def build_request(
    face_refs: Sequence[UploadedImage],
    target: UploadedImage,
    options: GenerationOptions,
) -> GenerationRequest:
    """Combine face references, one target and the form options.

    Args:
        face_refs: Primary face reference, then the optional secondary one.
        target: The image whose pose and scene are preserved.
        options: Aspect ratio, image size and optional prompt override.

    Returns:
        An immutable :class:`GenerationRequest` with the target image last.
    """
    return GenerationRequest(
        prompt_text=resolve_prompt(options.prompt),
        images=(*face_refs, target),
        aspect_ratio=options.aspect_ratio,
        image_size=options.image_size,
    )


def image_part(image: UploadedImage) -> dict:
    return {
        "inline_data": {
            "mime_type": image.mime_type,
            "data": base64.b64encode(image.data).decode("ascii"),
        }
    }


def build_payload(request: GenerationRequest) -> dict:
    """Render a :class:`GenerationRequest` as the provider JSON body."""
    parts: list[dict] = [{"text": request.prompt_text}]
    parts.extend(image_part(image) for image in request.images)
    return {
        "contents": [{"parts": parts}],
        "generationConfig": {
            "responseModalities": list(RESPONSE_MODALITIES),
            "imageConfig": {
                "aspectRatio": request.aspect_ratio,
                "imageSize": request.image_size,
            },
        },
    }
