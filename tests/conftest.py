from __future__ import annotations

import asyncio
import math
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from tubescribe.batch.layout import WorkspaceLayout
from tubescribe.batch.pipeline import JobPipeline, PipelineServices
from tubescribe.batch.schema import JobIdentity, sanitize
from tubescribe.batch.stages.acquire_audio import AudioAcquirer
from tubescribe.batch.stages.split_audio import SegmentSplitter
from tubescribe.exceptions import ResolutionError, TranscriptionError
from tubescribe.logging_core.logger import get_logger
from tubescribe.transcription.core import TranscriptionStrategy, strategy_for
from tubescribe.transcription.schema import BackendKind, TranscriptionBackend

MB = 1024 * 1024


class FakeResolver:
    """Resolves references from a table; unknown references fail."""

    def __init__(self, table: Dict[str, Tuple[str, str, str]], *, delay: float = 0.0) -> None:
        self.table = table
        self.delay = delay
        self.calls: List[Tuple[str, Optional[str]]] = []

    async def resolve(self, reference: str, proxy: Optional[str] = None) -> JobIdentity:
        self.calls.append((reference, proxy))
        if self.delay:
            await asyncio.sleep(self.delay)
        if reference not in self.table:
            raise ResolutionError("Video unavailable", reference=reference)
        video_id, title, author = self.table[reference]
        return JobIdentity(
            reference=reference,
            video_id=video_id,
            title=sanitize(title),
            author=sanitize(author),
            stream_url=f"https://media.example/{video_id}",
            proxy=proxy,
        )


class FakeTranscoder:
    """
    Writes sparse files instead of encoding.

    encode_stream: artifact size is looked up by stream URL.
    segment: deterministic partition, one file per started ceiling; each
    fragment holds an ordinal marker "segment-<i>".
    """

    audio_format = "mp3"

    def __init__(self, sizes: Optional[Dict[str, int]] = None, *, fail_encode: bool = False, produce_segments: bool = True) -> None:
        self.sizes = sizes or {}
        self.fail_encode = fail_encode
        self.produce_segments = produce_segments
        self.encode_calls: List[Path] = []
        self.segment_calls: List[Tuple[Path, Path, int]] = []

    async def encode_stream(self, source_url, output_path, *, http_headers=None, proxy=None) -> None:
        from tubescribe.media.ffmpeg import FFmpegError

        self.encode_calls.append(Path(output_path))
        await asyncio.sleep(0)
        if self.fail_encode:
            raise FFmpegError(["ffmpeg"], 1, "Server returned 403 Forbidden")
        with open(output_path, "wb") as handle:
            handle.truncate(self.sizes.get(source_url, MB))

    async def segment(self, input_path, output_dir, *, segment_time, pattern) -> None:
        self.segment_calls.append((Path(input_path), Path(output_dir), segment_time))
        await asyncio.sleep(0)
        if not self.produce_segments:
            return
        ceiling = (segment_time // 60) * MB
        count = math.ceil(Path(input_path).stat().st_size / ceiling)
        for index in range(count):
            (Path(output_dir) / (pattern % index)).write_bytes(f"segment-{index}".encode())


class ScriptedBackend(TranscriptionBackend):
    """Answers with responder(path); raises when the responder returns an exception."""

    def __init__(self, responder: Callable[[Path], object], *, kind: BackendKind = BackendKind.CEILING_CONSTRAINED) -> None:
        self.responder = responder
        self.kind = kind
        self.name = "scripted"
        self.calls: List[Path] = []

    async def transcribe(self, audio_path: Path) -> str:
        self.calls.append(Path(audio_path))
        await asyncio.sleep(0)
        answer = self.responder(Path(audio_path))
        if isinstance(answer, Exception):
            raise TranscriptionError(self.name, str(answer))
        return str(answer)


class RecordingProgress:
    def __init__(self) -> None:
        self.events: Dict[str, list] = {}

    def update(self, reference: str, percent: float, label: str) -> None:
        self.events.setdefault(reference, []).append((percent, label))

    def finish(self, reference: str, label: str, *, ok: bool = True) -> None:
        self.events.setdefault(reference, []).append(("done" if ok else "failed", label))


@pytest.fixture()
def logger():
    return get_logger("tests")


@pytest.fixture()
def layout(tmp_path) -> WorkspaceLayout:
    workspace = WorkspaceLayout(tmp_path / "work")
    workspace.ensure()
    return workspace


@pytest.fixture()
def make_pipeline(layout, logger):
    def _make(
        resolver: FakeResolver,
        transcoder: FakeTranscoder,
        backend: TranscriptionBackend,
        *,
        chunk_size_mb: int = 25,
        keep_audio: bool = True,
        progress=None,
        strategy: Optional[TranscriptionStrategy] = None,
    ) -> JobPipeline:
        services = PipelineServices(
            layout=layout,
            resolver=resolver,
            acquirer=AudioAcquirer(layout, transcoder, logger=logger),
            splitter=SegmentSplitter(layout, transcoder, chunk_size_mb=chunk_size_mb, logger=logger),
            strategy=strategy or strategy_for(backend, max_attempts=3, delay_seconds=0, logger=logger),
            progress=progress or RecordingProgress(),
            logger=logger,
            keep_audio=keep_audio,
        )
        return JobPipeline(services)

    return _make
