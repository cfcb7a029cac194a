# tubescribe/batch/stages/acquire_audio.py
"""
Stage 2: Acquire a local audio artifact.

Responsibility:
- Compute the canonical artifact path ({title} - {author}.{ext})
- Reuse the file if it already exists (presence only, never re-validated)
- Otherwise encode the resolved audio stream through ffmpeg

Encoder output goes to a ".part" sibling and is renamed into place on success,
so an interrupted encode never leaves a file that a later run would reuse.
Fails with AcquisitionError carrying the encoder's stderr. No retry.
"""

from __future__ import annotations

import logging
from logging import Logger

from tubescribe.batch.layout import WorkspaceLayout
from tubescribe.batch.schema import AudioArtifact, JobIdentity
from tubescribe.batch.stages.base import ACQUIRE_AUDIO, timer
from tubescribe.exceptions import AcquisitionError
from tubescribe.logging_core.logger import log_event
from tubescribe.media.ffmpeg import FFmpegError, Transcoder


class AudioAcquirer:
    def __init__(self, layout: WorkspaceLayout, transcoder: Transcoder, *, logger: Logger) -> None:
        self.layout = layout
        self.transcoder = transcoder
        self.logger = logger

    async def acquire(self, identity: JobIdentity) -> AudioArtifact:
        output = self.layout.audio_path(identity, self.transcoder.audio_format)

        if output.exists():
            log_event(
                self.logger,
                logging.INFO,
                f'Audio file already exists for "{identity.title}". Skipping download.',
                stage_name=ACQUIRE_AUDIO,
                event_type="skip",
                metadata={"reference": identity.reference, "path": str(output)},
            )
            return AudioArtifact.from_path(output, reused=True)

        if not identity.stream_url:
            raise AcquisitionError("no stream URL resolved", reference=identity.reference)

        partial = output.with_name(output.name + ".part")
        log_event(
            self.logger,
            logging.INFO,
            "Encoding audio stream",
            stage_name=ACQUIRE_AUDIO,
            event_type="start",
            metadata={"reference": identity.reference, "path": str(output)},
        )

        with timer() as end:
            try:
                await self.transcoder.encode_stream(
                    identity.stream_url,
                    partial,
                    http_headers=identity.http_headers,
                    proxy=identity.proxy,
                )
            except FFmpegError as exc:
                partial.unlink(missing_ok=True)
                raise AcquisitionError(
                    f"Error during conversion for {identity.title}: {exc}",
                    reference=identity.reference,
                    stderr=exc.stderr,
                ) from exc
            except OSError as exc:
                partial.unlink(missing_ok=True)
                raise AcquisitionError(f"encoder could not run: {exc}", reference=identity.reference) from exc

            if not partial.exists():
                raise AcquisitionError("encoder finished without producing output", reference=identity.reference)
            partial.replace(output)
            artifact = AudioArtifact.from_path(output)

            log_event(
                self.logger,
                logging.INFO,
                f"Download and conversion to {self.transcoder.audio_format} completed for {identity.title}.",
                stage_name=ACQUIRE_AUDIO,
                event_type="success",
                metadata={
                    "reference": identity.reference,
                    "size_bytes": artifact.size_bytes,
                    "execution_time_ms": round(end(), 1),
                },
            )

        return artifact
