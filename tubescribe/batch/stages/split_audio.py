# tubescribe/batch/stages/split_audio.py
"""
Stage 3: Split an artifact into segments under the backend's payload ceiling.

segment_count = ceil(size / ceiling). At most one segment means the artifact
itself is the only segment (no copy). Otherwise ffmpeg cuts fixed-duration
fragments into the job's chunk directory; the duration is chunk_size_mb * 60
seconds, a time heuristic for the byte ceiling, so fragment sizes are
approximate.

Fragments are ordered by the first integer in their file name. Files that do
not match the fragment naming pattern are ignored.
"""

from __future__ import annotations

import logging
import math
import re
import shutil
from logging import Logger
from pathlib import Path
from typing import List

from tubescribe.batch.layout import WorkspaceLayout
from tubescribe.batch.schema import AudioArtifact, JobIdentity, Segment
from tubescribe.batch.stages.base import SPLIT_AUDIO, timer
from tubescribe.exceptions import SplitError
from tubescribe.logging_core.logger import log_event
from tubescribe.media.ffmpeg import FFmpegError, Transcoder


BYTES_PER_MB = 1024 * 1024
CHUNK_PREFIX = "chunk-"
_FIRST_INT = re.compile(r"\d+")


def segment_count(size_bytes: int, ceiling_bytes: int) -> int:
    return math.ceil(size_bytes / ceiling_bytes)


def sequence_number(name: str) -> int:
    """First integer literal in a file name (extension excluded), 0 if none."""
    match = _FIRST_INT.search(Path(name).stem)
    return int(match.group(0)) if match else 0


def collect_segments(directory: Path, ext: str) -> List[Segment]:
    """Matching fragments in directory, ascending by embedded sequence number."""
    pattern = re.compile(rf"^{re.escape(CHUNK_PREFIX)}\d+\.{re.escape(ext)}$")
    names = sorted(
        (entry.name for entry in directory.iterdir() if entry.is_file() and pattern.match(entry.name)),
        key=sequence_number,
    )
    return [Segment(sequence_index=sequence_number(name), path=directory / name) for name in names]


class SegmentSplitter:
    def __init__(
        self,
        layout: WorkspaceLayout,
        transcoder: Transcoder,
        *,
        chunk_size_mb: int = 25,
        logger: Logger,
    ) -> None:
        if chunk_size_mb < 1:
            raise ValueError("chunk_size_mb must be >= 1")
        self.layout = layout
        self.transcoder = transcoder
        self.chunk_size_mb = chunk_size_mb
        self.logger = logger

    @property
    def ceiling_bytes(self) -> int:
        return self.chunk_size_mb * BYTES_PER_MB

    @property
    def segment_seconds(self) -> int:
        return self.chunk_size_mb * 60

    async def split(self, artifact: AudioArtifact, identity: JobIdentity) -> List[Segment]:
        expected = segment_count(artifact.size_bytes, self.ceiling_bytes)
        if expected <= 1:
            return [Segment(sequence_index=0, path=artifact.path)]

        ext = artifact.path.suffix.lstrip(".") or self.transcoder.audio_format
        chunk_dir = self.layout.chunk_dir(identity)
        # fragments left by an interrupted run would mix into this partition
        if chunk_dir.exists():
            shutil.rmtree(chunk_dir)
        chunk_dir.mkdir(parents=True, exist_ok=True)

        log_event(
            self.logger,
            logging.INFO,
            "Splitting audio",
            stage_name=SPLIT_AUDIO,
            event_type="start",
            metadata={
                "reference": identity.reference,
                "size_bytes": artifact.size_bytes,
                "expected_segments": expected,
                "segment_seconds": self.segment_seconds,
            },
        )

        with timer() as end:
            try:
                await self.transcoder.segment(
                    artifact.path,
                    chunk_dir,
                    segment_time=self.segment_seconds,
                    pattern=f"{CHUNK_PREFIX}%03d.{ext}",
                )
            except FFmpegError as exc:
                raise SplitError(f"segmentation failed: {exc}", reference=identity.reference) from exc
            except OSError as exc:
                raise SplitError(f"segmenter could not run: {exc}", reference=identity.reference) from exc

            segments = collect_segments(chunk_dir, ext)
            if not segments:
                raise SplitError("No chunks were created", reference=identity.reference)

            log_event(
                self.logger,
                logging.INFO,
                f"Created {len(segments)} chunks for {identity.title}",
                stage_name=SPLIT_AUDIO,
                event_type="success",
                metadata={
                    "reference": identity.reference,
                    "segments": len(segments),
                    "expected_segments": expected,
                    "execution_time_ms": round(end(), 1),
                },
            )

        return segments
