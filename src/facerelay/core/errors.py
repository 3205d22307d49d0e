"""Exceptions raised by facerelay before a provider call is made.

Provider-side problems are never raised: they come back from the provider
client as :class:`~facerelay.core.models.GenerationFailure` values.  The
exceptions here cover local problems only, and each one carries the HTTP
status the API layer answers with.
"""

from __future__ import annotations


class FaceRelayError(Exception):
    """Base class for local request errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UploadValidationError(FaceRelayError):
    """A required upload is missing or too many files were sent."""

    status_code = 400


class UploadTooLargeError(FaceRelayError):
    """An uploaded file exceeds the configured size cap."""

    status_code = 413


class ConfigurationError(FaceRelayError):
    """The service is not configured to talk to the provider."""

    status_code = 500
