# tubescribe/logging_core/logger.py
"""
Centralized structured logging for tubescribe batch runs.

Provides a pre-configured logger that emits JSON lines with the fields:
- timestamp (ISO, UTC)
- level
- message
- run_id
- stage_name (optional, filled by caller)
- event_type (start/success/failure/skip/retry/soft_failure/progress/...)
- metadata (dict)

All pipeline logs MUST go through a logger obtained from get_logger().
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging import Logger
from typing import Any, Dict
from uuid import UUID


LOGGER_NAMESPACE = "tubescribe.batch"


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
        }

        if hasattr(record, "run_id"):
            log_record["run_id"] = str(record.run_id)

        for field in ("stage_name", "event_type", "metadata"):
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)


class RunIdFilter(logging.Filter):
    """Stamps every record with the run id of the owning logger."""

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id  # type: ignore[attr-defined]
        return True


# One logger per run_id
_loggers: Dict[str, Logger] = {}
_level: int = logging.INFO


def get_logger(run_id: UUID | str) -> Logger:
    """
    Return a configured logger for the given batch run.

    Logs are emitted as JSON lines to stderr so stdout stays free for
    progress output. Idempotent per run_id.
    """
    run_id_str = str(run_id)

    if run_id_str in _loggers:
        return _loggers[run_id_str]

    logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{run_id_str}")
    logger.setLevel(_level)
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

    logger.addFilter(RunIdFilter(run_id_str))
    _loggers[run_id_str] = logger
    return logger


def configure_level(level: int) -> None:
    """Set the level for existing and future run loggers (CLI --verbose)."""
    global _level  # pylint: disable=global-statement
    _level = level
    for logger in _loggers.values():
        logger.setLevel(level)


def log_event(
    logger: Logger,
    level: int,
    message: str,
    *,
    stage_name: str | None = None,
    event_type: str,
    metadata: Dict[str, Any] | None = None,
    exc_info: bool = False,
) -> None:
    """
    Convenience wrapper for structured logging.

    Use this inside stages for consistency.
    """
    extra: Dict[str, Any] = {"event_type": event_type}
    if stage_name:
        extra["stage_name"] = stage_name
    if metadata:
        extra["metadata"] = metadata

    logger.log(level, message, extra=extra, exc_info=exc_info)


# High-Level Intent
# One JSON line per event, tagged with the batch run id, so the output of many
# concurrent jobs can be filtered per video afterwards (metadata.reference).
#
# Levels:
# INFO for stage progress, WARNING for soft failures and retries,
# ERROR for a job's hard failure. The batch itself never logs at CRITICAL.
#
# Extension Points
# Swap the stderr handler for a file handler via configure hooks.
