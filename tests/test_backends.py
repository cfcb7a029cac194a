from __future__ import annotations

from types import SimpleNamespace

import pytest

from tests.conftest import ScriptedBackend
from tubescribe.config import BatchConfig, Credentials
from tubescribe.exceptions import TranscriptionError
from tubescribe.transcription.core import build_strategy, strategy_for
from tubescribe.transcription.openai_api import OpenAITranscriptionBackend
from tubescribe.transcription.retry import BoundedRetry, SingleAttempt
from tubescribe.transcription.schema import BackendKind


class _FakeTranscriptions:
    def __init__(self, result=None, error=None) -> None:
        self.result = result
        self.error = error
        self.kwargs = []

    async def create(self, **kwargs):
        self.kwargs.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def _client(transcriptions: _FakeTranscriptions):
    return SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions))


@pytest.mark.asyncio
async def test_openai_backend_sends_file_and_returns_text(tmp_path) -> None:
    audio = tmp_path / "chunk-000.mp3"
    audio.write_bytes(b"ID3")
    transcriptions = _FakeTranscriptions(result="hello there")
    backend = OpenAITranscriptionBackend("sk-test", client=_client(transcriptions))

    assert await backend.transcribe(audio) == "hello there"
    (kwargs,) = transcriptions.kwargs
    assert kwargs["model"] == "whisper-1"
    assert kwargs["response_format"] == "text"
    assert backend.kind is BackendKind.CEILING_CONSTRAINED


@pytest.mark.asyncio
async def test_openai_backend_wraps_api_errors(tmp_path) -> None:
    audio = tmp_path / "a.mp3"
    audio.write_bytes(b"ID3")
    backend = OpenAITranscriptionBackend("sk-test", client=_client(_FakeTranscriptions(error=RuntimeError("429"))))

    with pytest.raises(TranscriptionError, match="429"):
        await backend.transcribe(audio)


def test_openai_backend_requires_key() -> None:
    with pytest.raises(ValueError):
        OpenAITranscriptionBackend("")


def test_ceiling_constrained_backend_gets_bounded_retry_and_segmentation() -> None:
    strategy = strategy_for(ScriptedBackend(lambda p: "x"), max_attempts=4, delay_seconds=1.5)

    assert strategy.requires_segmentation is True
    assert isinstance(strategy.policy, BoundedRetry)
    assert strategy.policy.max_attempts == 4
    assert strategy.policy.delay_seconds == 1.5


def test_ceiling_free_backend_gets_single_attempt_and_no_segmentation() -> None:
    strategy = strategy_for(ScriptedBackend(lambda p: "x", kind=BackendKind.CEILING_FREE))

    assert strategy.requires_segmentation is False
    assert isinstance(strategy.policy, SingleAttempt)


@pytest.mark.asyncio
async def test_ceiling_free_strategy_calls_once_on_failure(tmp_path) -> None:
    backend = ScriptedBackend(lambda p: RuntimeError("cuda oom"), kind=BackendKind.CEILING_FREE)

    assert await strategy_for(backend).transcribe(tmp_path / "whole.mp3") == ""
    assert len(backend.calls) == 1


def test_build_strategy_selects_openai_backend() -> None:
    config = BatchConfig(video_urls=["u"], backend="openai", max_attempts=2, retry_delay_seconds=0.5)

    strategy = build_strategy(config, Credentials(openai_api_key="sk-test"))

    assert isinstance(strategy.backend, OpenAITranscriptionBackend)
    assert strategy.policy.max_attempts == 2


@pytest.mark.asyncio
async def test_local_whisper_loads_model_once(monkeypatch, tmp_path) -> None:
    whisper = pytest.importorskip("whisper")
    from tubescribe.transcription.whisper import LocalWhisperBackend

    loads = []

    class _Model:
        def transcribe(self, path, fp16=False):
            return {"text": f"  text of {path.rsplit('/', 1)[-1]} "}

    def _load_model(name, device=None):
        loads.append((name, device))
        return _Model()

    monkeypatch.setattr(whisper, "load_model", _load_model)
    backend = LocalWhisperBackend("tiny", device="cpu")

    first = await backend.transcribe(tmp_path / "a.mp3")
    second = await backend.transcribe(tmp_path / "b.mp3")

    assert (first, second) == ("text of a.mp3", "text of b.mp3")
    assert loads == [("tiny", "cpu")]
    assert backend.kind is BackendKind.CEILING_FREE


def test_backend_kind_decides_segmentation() -> None:
    assert ScriptedBackend(lambda p: "x").requires_segmentation is True
    assert ScriptedBackend(lambda p: "x", kind=BackendKind.CEILING_FREE).requires_segmentation is False
