from __future__ import annotations

import json
import logging

from tubescribe.logging_core.logger import JSONFormatter, get_logger, log_event


class _Capture(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(JSONFormatter())
        self.lines = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(self.format(record))


def test_get_logger_is_idempotent_per_run() -> None:
    first = get_logger("run-a")

    assert get_logger("run-a") is first
    assert get_logger("run-b") is not first
    assert len(first.handlers) == 1
    assert first.propagate is False


def test_log_event_emits_structured_json() -> None:
    logger = get_logger("run-json")
    capture = _Capture()
    logger.addHandler(capture)
    try:
        log_event(
            logger,
            logging.WARNING,
            "Attempt 1 failed",
            stage_name="transcribe",
            event_type="retry",
            metadata={"attempt": 1},
        )
    finally:
        logger.removeHandler(capture)

    record = json.loads(capture.lines[-1])
    assert record["level"] == "WARNING"
    assert record["message"] == "Attempt 1 failed"
    assert record["run_id"] == "run-json"
    assert record["stage_name"] == "transcribe"
    assert record["event_type"] == "retry"
    assert record["metadata"] == {"attempt": 1}
    assert record["timestamp"].endswith("Z")


def test_optional_fields_are_omitted() -> None:
    logger = get_logger("run-min")
    capture = _Capture()
    logger.addHandler(capture)
    try:
        log_event(logger, logging.INFO, "Starting batch", event_type="batch_start")
    finally:
        logger.removeHandler(capture)

    record = json.loads(capture.lines[-1])
    assert "stage_name" not in record
    assert "metadata" not in record
