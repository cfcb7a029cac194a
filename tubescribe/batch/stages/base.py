# tubescribe/batch/stages/base.py
"""
Shared utilities for all pipeline stages.

This module defines:
- Stage names used in structured logs
- A lightweight timer for consistent execution_time_ms measurement

No business logic belongs here.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator


RESOLVE_METADATA = "resolve_metadata"
ACQUIRE_AUDIO = "acquire_audio"
SPLIT_AUDIO = "split_audio"
TRANSCRIBE = "transcribe"
PERSIST = "persist"
CLEANUP = "cleanup"


@contextmanager
def timer() -> Iterator[Callable[[], float]]:
    """
    Context manager that provides an end() function returning elapsed milliseconds.

    Usage:
        with timer() as end:
            # do work
            pass
        execution_time_ms = end()
    """
    start = time.perf_counter()

    def end() -> float:
        return (time.perf_counter() - start) * 1000

    yield end
