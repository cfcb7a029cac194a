# tubescribe/transcription/schema.py
"""
Shared contracts for the transcription subsystem.
Single responsibility: define the backend capability and its variants.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path


class BackendKind(str, Enum):
    """Backend variants, chosen once per batch."""
    CEILING_CONSTRAINED = "ceiling_constrained"  # payload limit; needs segmentation + retry
    CEILING_FREE = "ceiling_free"  # whole artifact in one call


class TranscriptionBackend(ABC):
    """A speech-to-text capability: audio file in, text out."""

    name: str = "backend"
    kind: BackendKind = BackendKind.CEILING_FREE

    @property
    def requires_segmentation(self) -> bool:
        return self.kind is BackendKind.CEILING_CONSTRAINED

    @abstractmethod
    async def transcribe(self, audio_path: Path) -> str:
        """
        Transcribe one audio file.

        Raises:
            TranscriptionError: the call failed; failure policy is the caller's.
        """
        ...

    async def close(self) -> None:  # pragma: no cover
        return None
