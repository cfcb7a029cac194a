# tubescribe/transcription/__init__.py
from tubescribe.transcription.core import TranscriptionStrategy, build_strategy, strategy_for
from tubescribe.transcription.retry import BoundedRetry, SingleAttempt
from tubescribe.transcription.schema import BackendKind, TranscriptionBackend

__all__ = [
    "BackendKind",
    "BoundedRetry",
    "SingleAttempt",
    "TranscriptionBackend",
    "TranscriptionStrategy",
    "build_strategy",
    "strategy_for",
]
