# tubescribe/batch/layout.py
"""
Filesystem layout shared by all jobs of a batch.

Three directories: audio artifacts, transient per-job chunk subdirectories,
final transcripts. Jobs never share a file because every path is derived
from the job's sanitized identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tubescribe.batch.schema import JobIdentity


@dataclass(frozen=True)
class WorkspaceLayout:
    base_dir: Path

    @property
    def audio_dir(self) -> Path:
        return self.base_dir / "audio"

    @property
    def chunks_dir(self) -> Path:
        return self.base_dir / "chunks"

    @property
    def transcripts_dir(self) -> Path:
        return self.base_dir / "transcripts"

    def ensure(self) -> None:
        for directory in (self.audio_dir, self.chunks_dir, self.transcripts_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def audio_path(self, identity: JobIdentity, ext: str = "mp3") -> Path:
        return self.audio_dir / f"{identity.title} - {identity.author}.{ext}"

    def chunk_dir(self, identity: JobIdentity) -> Path:
        return self.chunks_dir / f"{identity.title}-{identity.video_id}"

    def transcript_path(self, identity: JobIdentity) -> Path:
        return self.transcripts_dir / f"{identity.title} - {identity.author}.txt"
