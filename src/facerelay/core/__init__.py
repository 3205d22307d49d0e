"""Core functionality: configuration, domain types, payload assembly, provider client and batch fan-out."""

from facerelay.core.batch import generate_one, run_batch
from facerelay.core.config import FaceRelayConfig
from facerelay.core.gemini_client import GeminiClient, classify_response
from facerelay.core.request_builder import DEFAULT_PROMPT, build_payload, build_request

__all__ = [
    "DEFAULT_PROMPT",
    "FaceRelayConfig",
    "GeminiClient",
    "build_payload",
    "build_request",
    "classify_response",
    "generate_one",
    "run_batch",
]
