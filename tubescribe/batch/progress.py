# tubescribe/batch/progress.py
"""
Progress reporting for concurrent jobs.

The reporter is passed into every pipeline explicitly; jobs never reach for a
global progress object. ConsoleProgress keeps one tqdm bar per job, each on
its own terminal line, labelled with the job's current step.
"""

from __future__ import annotations

import sys
import threading
from typing import IO, Any, Dict, Optional, Protocol

from tqdm import tqdm


BAR_FORMAT = "{desc} |{bar}| {percentage:3.0f}%"


class ProgressReporter(Protocol):
    def update(self, reference: str, percent: float, label: str) -> None: ...

    def finish(self, reference: str, label: str, *, ok: bool = True) -> None: ...


class NullProgress:
    """Reporter that discards everything."""

    def update(self, reference: str, percent: float, label: str) -> None:
        return None

    def finish(self, reference: str, label: str, *, ok: bool = True) -> None:
        return None


class ConsoleProgress:
    """One tqdm bar (0-100) per reference; tqdm picks a free line for each."""

    def __init__(self, *, file: Optional[IO[str]] = None, ncols: Optional[int] = None) -> None:
        self.file = file or sys.stdout
        self.ncols = ncols
        self._bars: Dict[str, tqdm] = {}
        self._lock = threading.Lock()

    def _bar(self, reference: str, label: str) -> tqdm:
        bar = self._bars.get(reference)
        if bar is None:
            kwargs: Dict[str, Any] = {
                "total": 100,
                "desc": label,
                "leave": True,
                "file": self.file,
                "bar_format": BAR_FORMAT,
            }
            if self.ncols:
                kwargs["ncols"] = self.ncols
            bar = tqdm(**kwargs)
            self._bars[reference] = bar
        return bar

    def update(self, reference: str, percent: float, label: str) -> None:
        with self._lock:
            bar = self._bar(reference, label)
            bar.update(max(0.0, min(percent, 100.0)) - bar.n)
            bar.set_description(label)

    def finish(self, reference: str, label: str, *, ok: bool = True) -> None:
        with self._lock:
            bar = self._bar(reference, label)
            if ok:
                bar.update(100 - bar.n)
            bar.set_description(label)
            bar.close()
            del self._bars[reference]
