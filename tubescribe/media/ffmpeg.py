# tubescribe/media/ffmpeg.py
"""
ffmpeg adapter: stream encoding and fixed-duration segmentation.

Commands run through `subprocess.run()` inside `asyncio.to_thread()` so a
long encode suspends only the job that awaits it.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from tubescribe.exceptions import TubescribeError

logger = logging.getLogger(__name__)


class FFmpegError(TubescribeError):
    """ffmpeg exited non-zero."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        super().__init__(f"ffmpeg exited with code {returncode}: {stderr.strip()[-500:]}")
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: bytes
    stderr: bytes


async def run_subprocess(
    args: Sequence[str],
    *,
    capture_output: bool = True,
    timeout_s: float | None = None,
) -> RunResult:
    def _run() -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            list(args),
            stdout=subprocess.PIPE if capture_output else subprocess.DEVNULL,
            stderr=subprocess.PIPE if capture_output else subprocess.DEVNULL,
            check=False,
            timeout=timeout_s,
        )

    cp = await asyncio.to_thread(_run)
    return RunResult(
        returncode=int(cp.returncode),
        stdout=cp.stdout or b"",
        stderr=cp.stderr or b"",
    )


def resolve_ffmpeg_bin(ffmpeg_bin: str = "ffmpeg") -> str:
    ffmpeg_bin = (ffmpeg_bin or "ffmpeg").strip()
    if Path(ffmpeg_bin).exists():
        return ffmpeg_bin
    return shutil.which(ffmpeg_bin) or ffmpeg_bin


# file extension -> ffmpeg muxer name
AUDIO_MUXERS: Dict[str, str] = {
    "mp3": "mp3",
    "m4a": "ipod",
    "aac": "adts",
    "ogg": "ogg",
    "opus": "opus",
    "flac": "flac",
    "wav": "wav",
}


def _format_headers(headers: Dict[str, str]) -> str:
    return "".join(f"{key}: {value}\r\n" for key, value in headers.items())


class Transcoder:
    """Thin async wrapper over the ffmpeg binary."""

    def __init__(self, ffmpeg_bin: str = "ffmpeg", *, bitrate_kbps: int = 128, audio_format: str = "mp3") -> None:
        if audio_format not in AUDIO_MUXERS:
            raise ValueError(f"unsupported audio format: {audio_format}")
        self.ffmpeg_bin = resolve_ffmpeg_bin(ffmpeg_bin)
        self.bitrate_kbps = bitrate_kbps
        self.audio_format = audio_format

    def encode_args(
        self,
        source_url: str,
        output_path: Path,
        *,
        http_headers: Optional[Dict[str, str]] = None,
        proxy: Optional[str] = None,
    ) -> List[str]:
        args = [self.ffmpeg_bin, "-y", "-nostdin", "-loglevel", "error"]
        if proxy:
            args += ["-http_proxy", proxy]
        if http_headers:
            args += ["-headers", _format_headers(http_headers)]
        args += [
            "-i", source_url,
            "-vn",
            "-b:a", f"{self.bitrate_kbps}k",
            "-f", AUDIO_MUXERS[self.audio_format],
            str(output_path),
        ]
        return args

    def segment_args(self, input_path: Path, output_dir: Path, *, segment_time: int, pattern: str) -> List[str]:
        return [
            self.ffmpeg_bin, "-y", "-nostdin", "-loglevel", "error",
            "-i", str(input_path),
            "-map", "0:a",
            "-c", "copy",
            "-f", "segment",
            "-segment_time", str(segment_time),
            "-reset_timestamps", "1",
            str(output_dir / pattern),
        ]

    async def encode_stream(
        self,
        source_url: str,
        output_path: Path,
        *,
        http_headers: Optional[Dict[str, str]] = None,
        proxy: Optional[str] = None,
    ) -> None:
        """Encode an audio stream (URL) to a single local file."""
        args = self.encode_args(source_url, output_path, http_headers=http_headers, proxy=proxy)
        await self._run(args)

    async def segment(self, input_path: Path, output_dir: Path, *, segment_time: int, pattern: str) -> None:
        """Cut input into fixed-duration numbered fragments inside output_dir."""
        args = self.segment_args(input_path, output_dir, segment_time=segment_time, pattern=pattern)
        await self._run(args)

    async def _run(self, args: List[str]) -> None:
        logger.debug("running ffmpeg: %s", args[1:])
        result = await run_subprocess(args)
        if result.returncode != 0:
            raise FFmpegError(args, result.returncode, result.stderr.decode("utf-8", errors="replace"))
