from __future__ import annotations

import io

from tubescribe.batch.progress import ConsoleProgress, NullProgress


def test_console_progress_renders_label_and_percentage() -> None:
    out = io.StringIO()
    progress = ConsoleProgress(file=out, ncols=60)

    progress.update("ref-a", 0, "Initializing")
    progress.update("ref-a", 30, "Downloaded: Talk")
    progress.finish("ref-a", "Completed: Talk")

    rendered = out.getvalue()
    assert "Downloaded: Talk" in rendered
    assert "Completed: Talk" in rendered
    assert "100%" in rendered
    assert progress._bars == {}


def test_failed_job_keeps_last_percentage() -> None:
    out = io.StringIO()
    progress = ConsoleProgress(file=out, ncols=60)

    progress.update("ref-b", 10, "Downloading audio")
    progress.finish("ref-b", "Failed: Talk", ok=False)

    final_line = out.getvalue().replace("\r", "\n").strip().splitlines()[-1]
    assert "Failed: Talk" in final_line
    assert final_line.endswith(" 10%")


def test_jobs_get_separate_bars() -> None:
    progress = ConsoleProgress(file=io.StringIO(), ncols=60)

    progress.update("ref-a", 10, "a")
    progress.update("ref-b", 10, "b")

    assert len(progress._bars) == 2
    assert progress._bars["ref-a"] is not progress._bars["ref-b"]
    progress.finish("ref-a", "a")
    progress.finish("ref-b", "b")


def test_null_progress_accepts_everything() -> None:
    progress = NullProgress()

    progress.update("ref", 50, "x")
    progress.finish("ref", "x", ok=False)
