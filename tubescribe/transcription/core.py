# tubescribe/transcription/core.py
"""
Transcription strategy: a backend plus the failure policy that goes with it.
Single responsibility: pick the variant once per batch and expose a
transcribe() that always yields text (possibly empty).
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import Logger
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from tubescribe.config import BatchConfig, Credentials
from tubescribe.transcription.retry import BoundedRetry, SingleAttempt
from tubescribe.transcription.schema import BackendKind, TranscriptionBackend

FailurePolicy = Union[BoundedRetry, SingleAttempt, Callable[..., Awaitable[str]]]


@dataclass(frozen=True)
class TranscriptionStrategy:
    backend: TranscriptionBackend
    policy: FailurePolicy

    @property
    def kind(self) -> BackendKind:
        return self.backend.kind

    @property
    def requires_segmentation(self) -> bool:
        return self.backend.requires_segmentation

    async def transcribe(self, audio_path: Path) -> str:
        """Never raises for backend failures; "" marks a soft failure."""
        return await self.policy(self.backend.transcribe, audio_path)

    async def close(self) -> None:
        await self.backend.close()


def strategy_for(
    backend: TranscriptionBackend,
    *,
    max_attempts: int = 3,
    delay_seconds: float = 5.0,
    logger: Optional[Logger] = None,
) -> TranscriptionStrategy:
    """Attach the policy matching the backend variant."""
    if backend.kind is BackendKind.CEILING_CONSTRAINED:
        policy: FailurePolicy = BoundedRetry(max_attempts, delay_seconds, logger=logger)
    else:
        policy = SingleAttempt(logger=logger)
    return TranscriptionStrategy(backend=backend, policy=policy)


def build_strategy(config: BatchConfig, credentials: Credentials, logger: Optional[Logger] = None) -> TranscriptionStrategy:
    """Construct the configured backend and wrap it in its policy."""
    if config.backend == "openai":
        from tubescribe.transcription.openai_api import OpenAITranscriptionBackend

        backend: TranscriptionBackend = OpenAITranscriptionBackend(
            api_key=credentials.openai_api_key or "",
            model=config.openai_model,
        )
    else:
        # torch/whisper are heavy; import only when selected
        from tubescribe.transcription.whisper import LocalWhisperBackend

        backend = LocalWhisperBackend(model_name=config.whisper_model)

    return strategy_for(
        backend,
        max_attempts=config.max_attempts,
        delay_seconds=config.retry_delay_seconds,
        logger=logger,
    )
