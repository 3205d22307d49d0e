"""facerelay - Face reference relay for the Gemini image generation API."""

__version__ = "0.1.0"

from facerelay.core.config import FaceRelayConfig
from facerelay.core.gemini_client import GeminiClient
from facerelay.core.models import BatchSummary, ErrorKind, GenerationFailure, GenerationSuccess

__all__ = [
    "BatchSummary",
    "ErrorKind",
    "FaceRelayConfig",
    "GeminiClient",
    "GenerationFailure",
    "GenerationSuccess",
]
