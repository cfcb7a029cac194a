# tubescribe/transcription/openai_api.py
"""
OpenAI transcription API backend.

Ceiling-constrained: the API rejects uploads above its payload limit, so the
pipeline must hand this backend pre-cut segments. The SDK's own retries are
disabled; retry policy lives in BoundedRetry.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from openai import AsyncOpenAI

from tubescribe.exceptions import TranscriptionError
from tubescribe.transcription.schema import BackendKind, TranscriptionBackend

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "whisper-1"


class OpenAITranscriptionBackend(TranscriptionBackend):
    """Transcribes one audio file per API call."""

    name = "openai"
    kind = BackendKind.CEILING_CONSTRAINED

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        *,
        client: Optional[Any] = None,
        timeout: float = 600.0,
    ) -> None:
        if not api_key and client is None:
            raise ValueError("OpenAI API key required for the openai backend")
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key, max_retries=0, timeout=timeout)

    async def transcribe(self, audio_path: Path) -> str:
        logger.debug("Transcribing %s via OpenAI (model: %s)", audio_path, self.model)
        try:
            with open(audio_path, "rb") as audio_file:
                transcript = await self.client.audio.transcriptions.create(
                    model=self.model,
                    file=audio_file,
                    response_format="text",
                )
        except Exception as exc:
            raise TranscriptionError(self.name, str(exc)) from exc

        # response_format="text" yields a plain string; older SDKs return an object
        text = transcript if isinstance(transcript, str) else getattr(transcript, "text", "")
        return text or ""

    async def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
