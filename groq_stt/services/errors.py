"""
errors.py

Exception types raised inside the transcription pipeline. Every one of them is
caught at the item boundary (`ItemProcessor`) and converted into a tagged
failure result; none is meant to reach the batch coordinator.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional


class TranscriptionError(Exception):
    """Base error for the Groq STT batch pipeline."""

    code = "unexpected_error"


class InvalidInputError(TranscriptionError):
    """Raised when a request cannot be sent at all (no usable source)."""

    code = "invalid_input"


class MissingCredentialError(TranscriptionError):
    """Raised when no API key is available for the upstream API."""

    code = "missing_api_key"


class FileInputError(TranscriptionError):
    """Raised when a local audio source cannot be used as an upload."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class UpstreamApiError(TranscriptionError):
    """Raised when the transcription endpoint answers with a terminal non-2xx status."""

    code = "groq_api_error"

    def __init__(self, status: int, message: str, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ArtifactError(TranscriptionError):
    """Raised when a transcript artifact cannot be reserved or written."""

    code = "save_failed"


class ArtifactNameError(ArtifactError):
    """Explicit save name is unusable (separators, null bytes, wrong extension)."""


class ArtifactExistsError(ArtifactError, FileExistsError):
    """Explicit save name already exists; artifacts are never overwritten."""


class ArtifactReservationError(ArtifactError):
    """No free default name could be reserved within the collision budget."""


def to_error_message(error: object) -> str:
    if isinstance(error, BaseException):
        msg = str(error)
        return msg if msg else error.__class__.__name__
    if isinstance(error, str):
        return error
    try:
        return json.dumps(error)
    except (TypeError, ValueError):
        return str(error)
