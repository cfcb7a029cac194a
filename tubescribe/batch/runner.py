# tubescribe/batch/runner.py
"""
Batch entry point.

Responsibilities:
- Create the run id and run logger
- Bootstrap the workspace directories
- Build the transcription strategy once for the whole batch
- Wire stages into a pipeline and hand it to the scheduler

Called by the CLI; contains no stage logic.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional

from tubescribe.batch.layout import WorkspaceLayout
from tubescribe.batch.pipeline import JobPipeline, PipelineServices
from tubescribe.batch.progress import NullProgress, ProgressReporter
from tubescribe.batch.scheduler import BatchScheduler
from tubescribe.batch.schema import BatchReport
from tubescribe.batch.stages.acquire_audio import AudioAcquirer
from tubescribe.batch.stages.resolve_metadata import MetadataResolver
from tubescribe.batch.stages.split_audio import SegmentSplitter
from tubescribe.config import BatchConfig, Credentials
from tubescribe.logging_core.logger import get_logger, log_event
from tubescribe.media.ffmpeg import Transcoder
from tubescribe.transcription.core import TranscriptionStrategy, build_strategy


def build_services(
    config: BatchConfig,
    strategy: TranscriptionStrategy,
    *,
    logger: logging.Logger,
    progress: ProgressReporter,
) -> PipelineServices:
    layout = WorkspaceLayout(Path(config.base_dir).expanduser())
    transcoder = Transcoder(
        config.ffmpeg_bin,
        bitrate_kbps=config.audio_bitrate_kbps,
        audio_format=config.audio_format,
    )
    return PipelineServices(
        layout=layout,
        resolver=MetadataResolver(logger=logger),
        acquirer=AudioAcquirer(layout, transcoder, logger=logger),
        splitter=SegmentSplitter(layout, transcoder, chunk_size_mb=config.chunk_size_mb, logger=logger),
        strategy=strategy,
        progress=progress,
        logger=logger,
        keep_audio=config.keep_audio,
    )


async def run_batch(
    config: BatchConfig,
    credentials: Credentials,
    *,
    progress: Optional[ProgressReporter] = None,
    strategy: Optional[TranscriptionStrategy] = None,
) -> BatchReport:
    """
    Transcribe every configured video.

    Args:
        config: Validated batch configuration
        credentials: API keys for the selected backend
        progress: Reporter shared by all jobs (defaults to no output)
        strategy: Pre-built strategy; built from config when omitted

    Returns:
        BatchReport with one result per scheduled reference, in input order.
    """
    run_id = uuid.uuid4()
    logger = get_logger(run_id)

    strategy = strategy or build_strategy(config, credentials, logger)
    services = build_services(config, strategy, logger=logger, progress=progress or NullProgress())
    services.layout.ensure()

    log_event(
        logger,
        logging.INFO,
        "Workspace ready",
        event_type="progress",
        metadata={
            "base_dir": str(services.layout.base_dir),
            "backend": config.backend,
            "segmentation": strategy.requires_segmentation,
        },
    )

    scheduler = BatchScheduler(
        JobPipeline(services),
        logger=logger,
        concurrency=config.concurrency,
        proxies=config.proxies,
    )
    try:
        return await scheduler.run(config.video_urls)
    finally:
        await strategy.close()
