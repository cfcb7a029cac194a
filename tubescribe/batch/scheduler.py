# tubescribe/batch/scheduler.py
"""
Bounded-concurrency batch scheduler.

Runs one JobPipeline per reference with at most `concurrency` jobs in flight.
Excess jobs wait on a semaphore and start as soon as a slot frees. A job's
failure never cancels its siblings: pipelines already return FAILED results,
and anything that still escapes is converted into one here.
"""

from __future__ import annotations

import asyncio
import logging
from itertools import cycle, repeat
from logging import Logger
from typing import Iterator, List, Optional, Sequence

from tubescribe.batch.diagnostics.collector import BatchCollector
from tubescribe.batch.pipeline import JobPipeline
from tubescribe.batch.schema import BatchReport, FailureType, JobOutcome, JobResult, JobState
from tubescribe.logging_core.logger import log_event


DEFAULT_CONCURRENCY = 3


def unique_references(references: Sequence[str]) -> List[str]:
    """Drop blanks and repeated references, keeping first occurrence order."""
    seen = set()
    ordered: List[str] = []
    for reference in references:
        reference = (reference or "").strip()
        if reference and reference not in seen:
            seen.add(reference)
            ordered.append(reference)
    return ordered


class BatchScheduler:
    def __init__(
        self,
        pipeline: JobPipeline,
        *,
        logger: Logger,
        concurrency: int = DEFAULT_CONCURRENCY,
        proxies: Sequence[str] = (),
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.pipeline = pipeline
        self.logger = logger
        self.concurrency = concurrency
        self.proxies = list(proxies)

    def _proxy_cycle(self) -> Iterator[Optional[str]]:
        return cycle(self.proxies) if self.proxies else repeat(None)

    async def run(self, references: Sequence[str]) -> BatchReport:
        jobs = unique_references(references)
        if len(jobs) != len(references):
            log_event(
                self.logger,
                logging.WARNING,
                "Ignoring blank or duplicate references",
                event_type="progress",
                metadata={"given": len(references), "scheduled": len(jobs)},
            )

        log_event(
            self.logger,
            logging.INFO,
            "Starting batch",
            event_type="batch_start",
            metadata={"jobs": len(jobs), "concurrency": self.concurrency, "proxies": len(self.proxies)},
        )

        semaphore = asyncio.Semaphore(self.concurrency)
        proxies = self._proxy_cycle()
        assignments = [(reference, next(proxies)) for reference in jobs]

        async def _run_one(reference: str, proxy: Optional[str]) -> JobResult:
            async with semaphore:
                return await self.pipeline.run(reference, proxy)

        outcomes = await asyncio.gather(
            *(_run_one(reference, proxy) for reference, proxy in assignments),
            return_exceptions=True,
        )

        collector = BatchCollector()
        for reference, outcome in zip(jobs, outcomes):
            if isinstance(outcome, BaseException):
                log_event(
                    self.logger,
                    logging.ERROR,
                    f"Pipeline for {reference} escaped with an exception",
                    event_type="failure",
                    metadata={"reference": reference, "error": repr(outcome)},
                )
                outcome = JobResult(
                    reference=reference,
                    outcome=JobOutcome.FAILED,
                    final_state=JobState.FAILED,
                    failure_type=FailureType.UNEXPECTED_ERROR,
                    error=repr(outcome),
                )
            collector.add_job_result(outcome)

        report = collector.build_report()
        log_event(
            self.logger,
            logging.INFO,
            "All videos have been processed.",
            event_type="batch_complete",
            metadata={
                "completed": report.completed,
                "skipped": report.skipped,
                "failed": report.failed,
                "soft_failures": report.soft_failures,
                "failed_references": collector.failed_references(),
            },
        )
        return report


# High-Level Intent
# Bounded fan-out of independent pipelines over a shared event loop.
# Jobs only suspend at I/O (metadata, ffmpeg, transcription), so the
# semaphore bounds the number of jobs with in-flight external work.
#
# Edge Cases
# Same reference listed twice → scheduled once.
# Two different references resolving to the same title+author share file
# names; that race is not guarded.
# Proxies are assigned round-robin in input order.
