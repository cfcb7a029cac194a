# tubescribe/batch/stages/resolve_metadata.py
"""
Stage 1: Resolve video metadata using yt-dlp.

Responsibility:
- Look up id, title and uploader for a reference
- Sanitize title/author to a filesystem-safe charset
- Select an audio-capable stream and keep its URL + HTTP headers

Fails with ResolutionError (network, invalid reference, unavailable or
region-restricted video). Never retried here.
No media is downloaded.
"""

from __future__ import annotations

import asyncio
import logging
from logging import Logger
from typing import Any, Callable, Dict, Optional

import yt_dlp
from yt_dlp.utils import DownloadError

from tubescribe.batch.schema import JobIdentity, sanitize
from tubescribe.batch.stages.base import RESOLVE_METADATA, timer
from tubescribe.exceptions import ResolutionError
from tubescribe.logging_core.logger import log_event


YDL_PARAMS: Dict[str, Any] = {
    "quiet": True,
    "no_warnings": True,
    "skip_download": True,
    "noplaylist": True,
    "format": "bestaudio/best",
}


def _pick_stream(info: Dict[str, Any]) -> tuple[Optional[str], Dict[str, str]]:
    """Return (url, headers) of the selected audio format, if any."""
    if info.get("url"):
        return info["url"], dict(info.get("http_headers") or {})
    for fmt in info.get("requested_formats") or []:
        if fmt.get("acodec") not in (None, "none") and fmt.get("url"):
            return fmt["url"], dict(fmt.get("http_headers") or {})
    return None, {}


class MetadataResolver:
    """Turns a video reference into a JobIdentity."""

    def __init__(
        self,
        *,
        logger: Logger,
        ydl_params: Optional[Dict[str, Any]] = None,
        ydl_factory: Callable[[Dict[str, Any]], Any] = yt_dlp.YoutubeDL,
    ) -> None:
        self.logger = logger
        self.ydl_params = dict(ydl_params or YDL_PARAMS)
        self.ydl_factory = ydl_factory

    def _extract(self, reference: str, proxy: Optional[str]) -> Dict[str, Any]:
        params = dict(self.ydl_params)
        if proxy:
            params["proxy"] = proxy
        with self.ydl_factory(params) as ydl:
            info = ydl.extract_info(reference, download=False)
        if not info:
            raise DownloadError("No info returned")
        return info

    async def resolve(self, reference: str, proxy: Optional[str] = None) -> JobIdentity:
        log_event(
            self.logger,
            logging.INFO,
            "Resolving video metadata",
            stage_name=RESOLVE_METADATA,
            event_type="start",
            metadata={"reference": reference},
        )

        with timer() as end:
            try:
                info = await asyncio.to_thread(self._extract, reference, proxy)
            except DownloadError as exc:
                raise ResolutionError(f"metadata lookup failed: {exc}", reference=reference) from exc
            except Exception as exc:  # pylint: disable=broad-except
                raise ResolutionError(f"unexpected error during metadata lookup: {exc}", reference=reference) from exc

            video_id = info.get("id")
            if not video_id:
                raise ResolutionError("metadata has no video id", reference=reference)

            stream_url, headers = _pick_stream(info)
            if not stream_url:
                raise ResolutionError("no audio-capable stream available", reference=reference)

            identity = JobIdentity(
                reference=reference,
                video_id=str(video_id),
                title=sanitize(info.get("title")),
                author=sanitize(info.get("uploader") or info.get("channel")),
                stream_url=stream_url,
                http_headers=headers,
                proxy=proxy,
            )

            log_event(
                self.logger,
                logging.INFO,
                "Metadata resolved",
                stage_name=RESOLVE_METADATA,
                event_type="success",
                metadata={
                    "reference": reference,
                    "video_id": identity.video_id,
                    "title": identity.title,
                    "author": identity.author,
                    "execution_time_ms": round(end(), 1),
                },
            )

        return identity
