from __future__ import annotations

from pathlib import Path

import pytest

from tubescribe.exceptions import TranscriptionError
from tubescribe.transcription.retry import BoundedRetry, SingleAttempt


class _Flaky:
    def __init__(self, failures: int, text: str = "ok") -> None:
        self.failures = failures
        self.text = text
        self.calls = 0

    async def __call__(self, path: Path) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise TranscriptionError("fake", f"boom {self.calls}")
        return self.text


class _SleepRecorder:
    def __init__(self) -> None:
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.mark.asyncio
async def test_always_failing_call_is_attempted_exactly_max_times_then_empty(logger) -> None:
    fn = _Flaky(failures=10**6)
    sleep = _SleepRecorder()
    retry = BoundedRetry(max_attempts=3, delay_seconds=5.0, logger=logger, sleep=sleep)

    text = await retry(fn, Path("chunk-000.mp3"))

    assert text == ""
    assert fn.calls == 3
    assert sleep.delays == [5.0, 5.0]


@pytest.mark.asyncio
async def test_recovers_on_later_attempt(logger) -> None:
    fn = _Flaky(failures=1, text="hello")
    sleep = _SleepRecorder()

    text = await BoundedRetry(3, 5.0, logger=logger, sleep=sleep)(fn, Path("a.mp3"))

    assert text == "hello"
    assert fn.calls == 2
    assert sleep.delays == [5.0]


@pytest.mark.asyncio
@pytest.mark.parametrize("attempts", [1, 5])
async def test_attempt_bound_is_configurable(logger, attempts) -> None:
    fn = _Flaky(failures=10**6)

    assert await BoundedRetry(attempts, 0, logger=logger, sleep=_SleepRecorder())(fn, Path("a.mp3")) == ""
    assert fn.calls == attempts


def test_rejects_non_positive_attempts() -> None:
    with pytest.raises(ValueError):
        BoundedRetry(0)


@pytest.mark.asyncio
async def test_single_attempt_returns_empty_without_retry(logger) -> None:
    fn = _Flaky(failures=10**6)

    assert await SingleAttempt(logger=logger)(fn, Path("whole.mp3")) == ""
    assert fn.calls == 1
