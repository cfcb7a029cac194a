# tubescribe/batch/schema.py
"""
Authoritative contracts for the batch transcription pipeline.

This module defines:
- JobIdentity: the resolved, filesystem-safe identity of one video
- AudioArtifact / Segment: local audio files owned by a job
- JobState and the terminal JobOutcome of a pipeline run
- JobResult / BatchReport: what the scheduler hands back to the caller
- Typed failure categories for per-job hard failures

All other modules MUST conform to these contracts.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9 \-_]")


def sanitize(value: str | None) -> str:
    """Strip every character outside [A-Za-z0-9 -_]."""
    return _UNSAFE_CHARS.sub("", value or "")


class FailureType(str, Enum):
    """Typed categories for per-job hard failures."""
    RESOLUTION_ERROR = "resolution_error"
    ACQUISITION_ERROR = "acquisition_error"
    SPLIT_ERROR = "split_error"
    PERSISTENCE_ERROR = "persistence_error"
    UNEXPECTED_ERROR = "unexpected_error"


class JobState(str, Enum):
    INIT = "init"
    RESOLVED = "resolved"
    SKIPPED = "skipped"
    ACQUIRING = "acquiring"
    ACQUIRED = "acquired"
    SPLITTING = "splitting"
    SPLIT = "split"
    TRANSCRIBING = "transcribing"
    TRANSCRIBED = "transcribed"
    PERSISTED = "persisted"
    CLEANED_UP = "cleaned_up"
    FAILED = "failed"


class JobOutcome(str, Enum):
    """Exactly one of these is reached by every job."""
    SKIPPED = "skipped"
    COMPLETED = "completed"
    FAILED = "failed"


class JobIdentity(BaseModel):
    """
    Resolved identity of one video.

    title/author are already sanitized; they double as the cache key for the
    audio artifact and transcript file names.
    """
    reference: str
    video_id: str
    title: str
    author: str
    stream_url: Optional[str] = None
    http_headers: Dict[str, str] = Field(default_factory=dict)
    proxy: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class AudioArtifact(BaseModel):
    """A local audio file plus its size in bytes."""
    path: Path
    size_bytes: int = Field(ge=0)
    reused: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_path(cls, path: Path, *, reused: bool = False) -> "AudioArtifact":
        return cls(path=path, size_bytes=path.stat().st_size, reused=reused)


class Segment(BaseModel):
    """One ordered fragment of an artifact (or the whole artifact)."""
    sequence_index: int = Field(ge=0)
    path: Path

    model_config = ConfigDict(frozen=True)


class AssembledTranscript(BaseModel):
    """Result of joining per-segment transcription outcomes."""
    text: str
    segment_count: int
    soft_failures: int = 0

    model_config = ConfigDict(frozen=True)


class JobResult(BaseModel):
    """Terminal record of one job's pipeline run."""
    reference: str
    outcome: JobOutcome
    final_state: JobState
    identity: Optional[JobIdentity] = None
    transcript_path: Optional[Path] = None
    segment_count: int = 0
    soft_failures: int = 0
    failure_type: Optional[FailureType] = None
    error: Optional[str] = None
    execution_time_ms: Optional[float] = None

    model_config = ConfigDict(frozen=True)


class BatchReport(BaseModel):
    """Aggregated results of a batch, in input order."""
    results: List[JobResult] = Field(default_factory=list)
    completed: int = 0
    skipped: int = 0
    failed: int = 0
    soft_failures: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def total(self) -> int:
        return len(self.results)


# High-Level Intent
# schema.py is the contract layer between stages, the pipeline and the
# scheduler. Stage functions take and return these models; nothing passes
# raw dicts across a stage boundary.
#
# Edge Cases
# Titles made only of unsafe characters sanitize to "" and still produce a
# valid (if ugly) " - author" file name.
# TranscriptionOutcome is a plain str: "" marks a soft failure.
