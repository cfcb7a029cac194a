# tubescribe/exceptions.py
"""tubescribe exception hierarchy."""

from __future__ import annotations


class TubescribeError(Exception):
    """Base error for tubescribe."""


class ConfigurationError(TubescribeError):
    """Raised when configuration or credentials are missing or invalid."""


class StageError(TubescribeError):
    """Raised when a per-job pipeline stage fails."""

    def __init__(self, message: str, *, reference: str | None = None) -> None:
        prefix = f"{reference}: " if reference else ""
        super().__init__(f"{prefix}{message}")
        self.reference = reference
        self.message = message


class ResolutionError(StageError):
    """Metadata lookup failed (network, invalid reference, unavailable video)."""


class AcquisitionError(StageError):
    """Audio stream could not be encoded to a local artifact."""

    def __init__(self, message: str, *, reference: str | None = None, stderr: str = "") -> None:
        super().__init__(message, reference=reference)
        self.stderr = stderr


class SplitError(StageError):
    """Segmentation produced no fragments although more than one was required."""


class TranscriptionError(TubescribeError):
    """Raised by a backend when a single transcription call fails."""

    def __init__(self, backend: str, message: str) -> None:
        super().__init__(f"{backend}: {message}")
        self.backend = backend
        self.message = message
