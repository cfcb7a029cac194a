# tubescribe/config.py
"""
Batch configuration and credentials.

The configuration is a YAML file read once at startup and validated into a
frozen BatchConfig. Credentials come from the process environment, optionally
seeded from a .env file. Every failure here is a ConfigurationError, which the
CLI treats as fatal before any job starts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from tubescribe.exceptions import ConfigurationError


BackendName = Literal["openai", "whisper"]
AudioFormat = Literal["mp3", "m4a", "aac", "ogg", "opus", "flac", "wav"]

OPENAI_API_KEY_ENV = "OPENAI_API_KEY"


class BatchConfig(BaseModel):
    """Validated batch configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    video_urls: List[str] = Field(
        min_length=1,
        validation_alias=AliasChoices("video_urls", "videoUrls"),
    )
    proxies: List[str] = Field(default_factory=list)
    backend: BackendName = "openai"

    concurrency: int = Field(default=3, ge=1)
    chunk_size_mb: int = Field(default=25, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=5.0, ge=0)

    audio_bitrate_kbps: int = Field(default=128, ge=8)
    audio_format: AudioFormat = "mp3"
    base_dir: str = "."
    keep_audio: bool = True

    openai_model: str = "whisper-1"
    whisper_model: str = "base"
    ffmpeg_bin: str = "ffmpeg"

    @field_validator("video_urls", "proxies")
    @classmethod
    def _strip_blank(cls, value: List[str], info: ValidationInfo) -> List[str]:
        stripped = [item.strip() for item in value if item and item.strip()]
        if info.field_name == "video_urls" and not stripped:
            raise ValueError("video_urls must contain at least one non-blank URL")
        return stripped


def load_config(path: str | Path, overrides: Optional[Dict[str, Any]] = None) -> BatchConfig:
    """
    Read and validate the YAML configuration file.

    Args:
        path: Path to config.yaml
        overrides: Optional CLI overrides applied on top of the file contents

    Raises:
        ConfigurationError: file missing/unreadable, invalid YAML, or schema violation
    """
    config_path = Path(path).expanduser()
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration file {config_path}: {exc}") from exc

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping, got {type(data).__name__}")

    if overrides:
        data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return BatchConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {exc}") from exc


@dataclass(frozen=True)
class Credentials:
    """API keys for the enabled backend."""

    openai_api_key: Optional[str] = None

    @classmethod
    def from_env(cls, backend: BackendName, *, env_file: Optional[str] = ".env") -> "Credentials":
        """
        Collect credentials from the environment.

        The .env file (if present) never overrides variables already set.
        Raises ConfigurationError when the selected backend's key is absent.
        """
        if env_file and Path(env_file).is_file():
            load_dotenv(dotenv_path=env_file, override=False)

        openai_key = os.getenv(OPENAI_API_KEY_ENV) or None
        if backend == "openai" and not openai_key:
            raise ConfigurationError(
                f"{OPENAI_API_KEY_ENV} is not set in the environment variables."
            )
        return cls(openai_api_key=openai_key)
