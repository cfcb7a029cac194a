# tubescribe/transcription/retry.py
"""
Failure policies wrapped around a backend call.

BoundedRetry retries a fixed number of times with a fixed delay and yields ""
once attempts are exhausted. SingleAttempt calls once and yields "" on
failure. Neither ever raises an ordinary exception to its caller.
"""

from __future__ import annotations

import asyncio
import logging
from logging import Logger
from pathlib import Path
from typing import Awaitable, Callable, Optional

from tenacity import AsyncRetrying, RetryCallState, RetryError, stop_after_attempt, wait_fixed

from tubescribe.logging_core.logger import log_event


TranscribeFn = Callable[[Path], Awaitable[str]]
SleepFn = Callable[[float], Awaitable[None]]

STAGE_NAME = "transcribe"


class BoundedRetry:
    """Fixed attempts, fixed delay, empty text on exhaustion."""

    def __init__(
        self,
        max_attempts: int = 3,
        delay_seconds: float = 5.0,
        *,
        logger: Optional[Logger] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.sleep = sleep

    def _log_retry(self, path: Path) -> Callable[[RetryCallState], None]:
        def _log(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            log_event(
                self.logger,
                logging.WARNING,
                f"Attempt {state.attempt_number} failed for {path}. Retrying in {self.delay_seconds:g} seconds...",
                stage_name=STAGE_NAME,
                event_type="retry",
                metadata={"path": str(path), "attempt": state.attempt_number, "error": str(exc)},
            )

        return _log

    async def __call__(self, fn: TranscribeFn, path: Path) -> str:
        text = ""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_fixed(self.delay_seconds),
                sleep=self.sleep,
                before_sleep=self._log_retry(path),
            ):
                with attempt:
                    text = await fn(path)
        except RetryError as exc:
            last_error = exc.last_attempt.exception()
            log_event(
                self.logger,
                logging.WARNING,
                f"Error transcribing {path} after {self.max_attempts} attempts",
                stage_name=STAGE_NAME,
                event_type="soft_failure",
                metadata={"path": str(path), "attempts": self.max_attempts, "error": str(last_error)},
            )
            return ""
        return text or ""


class SingleAttempt:
    """One call; failures are logged and turned into empty text."""

    def __init__(self, *, logger: Optional[Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    async def __call__(self, fn: TranscribeFn, path: Path) -> str:
        try:
            return (await fn(path)) or ""
        except Exception as exc:  # pylint: disable=broad-except
            log_event(
                self.logger,
                logging.ERROR,
                f"Error transcribing {path}",
                stage_name=STAGE_NAME,
                event_type="soft_failure",
                metadata={"path": str(path), "error": str(exc)},
            )
            return ""
