# tubescribe/batch/pipeline.py
"""
Per-video pipeline.

Responsibilities:
- Resolve metadata, then skip if the transcript already exists
- Run acquire → split → transcribe → persist → cleanup in strict order
- Report progress through the injected reporter
- Contain every stage failure: the job ends as a logged FAILED result and the
  exception never reaches the scheduler

No stage logic lives here, only sequencing and error containment.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from logging import Logger
from pathlib import Path
from typing import Optional

from tubescribe.batch.layout import WorkspaceLayout
from tubescribe.batch.progress import ProgressReporter
from tubescribe.batch.schema import (
    AudioArtifact,
    FailureType,
    JobIdentity,
    JobOutcome,
    JobResult,
    JobState,
    Segment,
)
from tubescribe.batch.stages.acquire_audio import AudioAcquirer
from tubescribe.batch.stages.assemble_transcript import assemble
from tubescribe.batch.stages.base import CLEANUP, PERSIST, timer
from tubescribe.batch.stages.resolve_metadata import MetadataResolver
from tubescribe.batch.stages.split_audio import SegmentSplitter
from tubescribe.exceptions import AcquisitionError, ResolutionError, SplitError
from tubescribe.logging_core.logger import log_event
from tubescribe.transcription.core import TranscriptionStrategy


@dataclass
class PipelineServices:
    """Everything a pipeline needs, passed in explicitly."""
    layout: WorkspaceLayout
    resolver: MetadataResolver
    acquirer: AudioAcquirer
    splitter: SegmentSplitter
    strategy: TranscriptionStrategy
    progress: ProgressReporter
    logger: Logger
    keep_audio: bool = True


def _failure_type(exc: Exception, state: JobState) -> FailureType:
    if isinstance(exc, ResolutionError):
        return FailureType.RESOLUTION_ERROR
    if isinstance(exc, AcquisitionError):
        return FailureType.ACQUISITION_ERROR
    if isinstance(exc, SplitError):
        return FailureType.SPLIT_ERROR
    if isinstance(exc, OSError) and state is JobState.TRANSCRIBED:
        return FailureType.PERSISTENCE_ERROR
    return FailureType.UNEXPECTED_ERROR


def write_transcript(path: Path, text: str) -> None:
    """Write the transcript atomically: readers see nothing or the full text."""
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


class JobPipeline:
    """Runs the stage sequence for one reference at a time."""

    def __init__(self, services: PipelineServices) -> None:
        self.services = services

    async def run(self, reference: str, proxy: Optional[str] = None) -> JobResult:
        s = self.services
        state = JobState.INIT
        identity: Optional[JobIdentity] = None

        with timer() as end:
            try:
                s.progress.update(reference, 0, "Initializing")
                identity = await s.resolver.resolve(reference, proxy)
                state = JobState.RESOLVED

                transcript_path = s.layout.transcript_path(identity)
                if transcript_path.exists():
                    log_event(
                        s.logger,
                        logging.INFO,
                        f'Transcript already exists for "{identity.title}". Skipping transcription.',
                        event_type="skip",
                        metadata={"reference": reference, "path": str(transcript_path)},
                    )
                    s.progress.finish(reference, f"Skipped: {identity.title}")
                    return JobResult(
                        reference=reference,
                        outcome=JobOutcome.SKIPPED,
                        final_state=JobState.SKIPPED,
                        identity=identity,
                        transcript_path=transcript_path,
                        execution_time_ms=end(),
                    )

                state = JobState.ACQUIRING
                s.progress.update(reference, 10, "Downloading audio")
                artifact = await s.acquirer.acquire(identity)
                state = JobState.ACQUIRED
                s.progress.update(reference, 30, f"Downloaded: {identity.title}")

                state = JobState.SPLITTING
                segments = await self._segments(artifact, identity)
                state = JobState.SPLIT
                s.progress.update(reference, 50, f"Audio split into {len(segments)} chunks")

                state = JobState.TRANSCRIBING

                def _on_segment(position: int, total: int) -> None:
                    s.progress.update(reference, 50 + (position / total) * 40, f"Transcribing chunk {position + 1}")

                assembled = await assemble(
                    segments,
                    s.strategy.transcribe,
                    on_segment=_on_segment,
                    logger=s.logger,
                    label=identity.title,
                )
                state = JobState.TRANSCRIBED

                s.progress.update(reference, 95, "Saving transcript")
                write_transcript(transcript_path, assembled.text)
                state = JobState.PERSISTED
                log_event(
                    s.logger,
                    logging.INFO,
                    f"Transcript saved to {transcript_path}",
                    stage_name=PERSIST,
                    event_type="success",
                    metadata={
                        "reference": reference,
                        "segments": assembled.segment_count,
                        "soft_failures": assembled.soft_failures,
                        "characters": len(assembled.text),
                    },
                )

                self._cleanup(identity, artifact)
                state = JobState.CLEANED_UP
                s.progress.finish(reference, f"Completed: {identity.title}")

                return JobResult(
                    reference=reference,
                    outcome=JobOutcome.COMPLETED,
                    final_state=state,
                    identity=identity,
                    transcript_path=transcript_path,
                    segment_count=assembled.segment_count,
                    soft_failures=assembled.soft_failures,
                    execution_time_ms=end(),
                )

            except Exception as exc:  # pylint: disable=broad-except
                failure_type = _failure_type(exc, state)
                log_event(
                    s.logger,
                    logging.ERROR,
                    f"An error occurred while processing {reference}",
                    event_type="failure",
                    metadata={
                        "reference": reference,
                        "video_id": identity.video_id if identity else None,
                        "title": identity.title if identity else None,
                        "state": state.value,
                        "failure_type": failure_type.value,
                        "error": str(exc),
                    },
                    exc_info=failure_type is FailureType.UNEXPECTED_ERROR,
                )
                s.progress.finish(reference, f"Failed: {identity.title if identity else reference}", ok=False)
                return JobResult(
                    reference=reference,
                    outcome=JobOutcome.FAILED,
                    final_state=JobState.FAILED,
                    identity=identity,
                    failure_type=failure_type,
                    error=str(exc),
                    execution_time_ms=end(),
                )

    async def _segments(self, artifact: AudioArtifact, identity: JobIdentity) -> list[Segment]:
        s = self.services
        if not s.strategy.requires_segmentation:
            return [Segment(sequence_index=0, path=artifact.path)]
        s.progress.update(identity.reference, 40, "Splitting audio")
        return await s.splitter.split(artifact, identity)

    def _cleanup(self, identity: JobIdentity, artifact: AudioArtifact) -> None:
        """Remove transient files; the transcript is already safe on disk."""
        s = self.services
        targets = [s.layout.chunk_dir(identity)]
        if not s.keep_audio:
            targets.append(artifact.path)

        for target in targets:
            try:
                if target.is_dir():
                    shutil.rmtree(target)
                elif target.exists():
                    target.unlink()
            except OSError as exc:
                log_event(
                    s.logger,
                    logging.WARNING,
                    "Cleanup failed",
                    stage_name=CLEANUP,
                    event_type="failure",
                    metadata={"reference": identity.reference, "path": str(target), "error": str(exc)},
                )


# High-Level Intent
# pipeline.py owns the state machine of one job:
# Init → Resolved → (Skipped | Acquiring → Acquired → Splitting → Split →
# Transcribing → Transcribed → Persisted → CleanedUp), or Failed from any
# non-terminal state.
#
# Edge Cases & Failure Scenarios
# Transcript already present → Skipped before any download or transcode.
# Every segment soft-fails → transcript is written empty; job still completes.
# Cleanup error → logged warning; the job keeps its Completed outcome.
# Ceiling-free backend → no split; the artifact is the only segment.
