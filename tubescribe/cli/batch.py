# tubescribe/cli/batch.py
"""
CLI entrypoint for batch transcription.

Thin adapter, no business logic:
- Parse arguments and load configuration
- Check credentials (fatal when missing)
- Run the batch and print a summary

Exit code is 0 whenever the batch ran, regardless of individual job failures.
Startup errors (configuration, credentials) exit 1 before any job starts.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from tubescribe.batch.progress import ConsoleProgress
from tubescribe.batch.runner import run_batch
from tubescribe.config import Credentials, load_config
from tubescribe.exceptions import ConfigurationError
from tubescribe.logging_core.logger import configure_level


app = typer.Typer(
    name="tubescribe",
    help="tubescribe: batch audio transcription for video URLs",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """tubescribe command group."""


@app.command()
def run(
    config: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="YAML file with video_urls and options"),
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="Override backend: openai or whisper"),
    env_file: str = typer.Option(".env", "--env-file", help="dotenv file with API keys"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug-level logs"),
) -> None:
    """
    Transcribe every video listed in the configuration file.
    """
    configure_level(logging.DEBUG if verbose else logging.INFO)

    try:
        batch_config = load_config(config, overrides={"backend": backend})
        credentials = Credentials.from_env(batch_config.backend, env_file=env_file)
    except ConfigurationError as exc:
        typer.echo(typer.style("✗ Cannot start batch", fg=typer.colors.RED, bold=True), err=True)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Processing {len(batch_config.video_urls)} video(s) with backend '{batch_config.backend}'")

    try:
        report = asyncio.run(run_batch(batch_config, credentials, progress=ConsoleProgress()))
    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user.", err=True)
        sys.exit(1)

    typer.echo("")
    typer.echo(typer.style("Success!", fg=typer.colors.GREEN, bold=True))
    typer.echo("All videos have been processed.")
    typer.echo(f"Completed: {report.completed}  Skipped: {report.skipped}  Failed: {report.failed}")
    if report.soft_failures:
        typer.echo(
            typer.style(
                f"⚠ {report.soft_failures} chunk(s) could not be transcribed; see logs.",
                fg=typer.colors.YELLOW,
            )
        )
    if report.failed:
        typer.echo(typer.style("⚠ Some videos failed. Check the JSON logs on stderr.", fg=typer.colors.YELLOW))


if __name__ == "__main__":
    app()
