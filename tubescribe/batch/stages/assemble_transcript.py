# tubescribe/batch/stages/assemble_transcript.py
"""
Stage 4: Transcribe segments in order and join the text.

Segments are transcribed one after another, never concurrently, to bound a
single job's load on the transcription service. Empty text for a segment is a
soft failure: it is counted and logged, contributes nothing to the join, and
assembly continues with the next segment.
"""

from __future__ import annotations

import logging
from logging import Logger
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from tubescribe.batch.schema import AssembledTranscript, Segment
from tubescribe.batch.stages.base import TRANSCRIBE
from tubescribe.logging_core.logger import log_event


TranscribeFn = Callable[[Path], Awaitable[str]]
SegmentCallback = Callable[[int, int], None]


async def assemble(
    segments: Sequence[Segment],
    transcribe_fn: TranscribeFn,
    *,
    on_segment: Optional[SegmentCallback] = None,
    logger: Optional[Logger] = None,
    label: str = "",
) -> AssembledTranscript:
    """
    Transcribe each segment in ascending sequence order and join the results.

    Args:
        segments: Segments of one artifact
        transcribe_fn: Coroutine returning text for a path ("" on soft failure)
        on_segment: Called with (position, total) before each segment
        logger: Run logger for soft-failure warnings
        label: Human-readable job name for log messages

    Returns:
        AssembledTranscript with the trimmed single-space join of non-empty texts.
    """
    ordered = sorted(segments, key=lambda segment: segment.sequence_index)
    parts: List[str] = []
    soft_failures = 0

    for position, segment in enumerate(ordered):
        if on_segment is not None:
            on_segment(position, len(ordered))

        text = (await transcribe_fn(segment.path) or "").strip()
        if text:
            parts.append(text)
            continue

        soft_failures += 1
        if logger is not None:
            log_event(
                logger,
                logging.WARNING,
                f"Failed to transcribe chunk {position + 1} for {label or segment.path.name} after multiple attempts.",
                stage_name=TRANSCRIBE,
                event_type="soft_failure",
                metadata={"segment": segment.sequence_index, "path": str(segment.path)},
            )

    return AssembledTranscript(
        text=" ".join(parts).strip(),
        segment_count=len(ordered),
        soft_failures=soft_failures,
    )
