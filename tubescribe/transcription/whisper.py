# tubescribe/transcription/whisper.py
"""
Local whisper backend.
Single responsibility: own the model lifecycle and run inference off the event loop.
The model is loaded lazily, once per backend instance.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Optional

import torch
import whisper

from tubescribe.exceptions import TranscriptionError
from tubescribe.transcription.schema import BackendKind, TranscriptionBackend

logger = logging.getLogger(__name__)


class LocalWhisperBackend(TranscriptionBackend):
    """Ceiling-free: the whole artifact goes through the model in one call."""

    name = "whisper"
    kind = BackendKind.CEILING_FREE

    def __init__(self, model_name: str = "base", device: Optional[str] = None) -> None:
        self.model_name = model_name
        self.device = device or ("cuda" if torch.cuda.is_available() else "cpu")
        self._model: Optional[whisper.Whisper] = None
        # one inference at a time per model instance
        self._lock = threading.Lock()

    def _load_model(self) -> whisper.Whisper:
        if self._model is None:
            logger.info("Loading whisper model %s on %s", self.model_name, self.device)
            self._model = whisper.load_model(self.model_name, device=self.device)
        return self._model

    def _transcribe_sync(self, audio_path: Path) -> str:
        with self._lock:
            model = self._load_model()
            result = model.transcribe(str(audio_path), fp16=self.device == "cuda")
        return (result.get("text") or "").strip()

    async def transcribe(self, audio_path: Path) -> str:
        try:
            return await asyncio.to_thread(self._transcribe_sync, audio_path)
        except Exception as exc:
            raise TranscriptionError(self.name, str(exc)) from exc
