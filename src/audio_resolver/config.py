"""Resolver configuration via pydantic-settings (.env + env vars)."""

import json
import sys
from pathlib import Path
from typing import Annotated

from loguru import logger
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


# Stage shown for records logged without a bound stage
DEFAULT_LOG_STAGE = "resolver"


def _default_audio_command() -> list[str]:
    if sys.platform == "win32":
        return ["yt.bat"]
    return ["sh", "yt.sh"]


class ResolverConfig(BaseSettings):
    """All resolver configuration with layered resolution:
    .env file < environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # -- Search --
    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("api_key", "API_KEY", "apiKey"),
    )
    region_code: str = "US"
    detect_region: bool = True
    max_results: int = 10
    quota_timeout_minutes: int = 10

    # -- Download / conversion --
    audio_format: str = Field(
        default="m4a",
        validation_alias=AliasChoices("audio_format", "AUDIO_FORMAT", "audioFormat"),
    )
    audio_command: Annotated[list[str], NoDecode] = Field(
        default_factory=_default_audio_command,
        validation_alias=AliasChoices("audio_command", "AUDIO_COMMAND", "audioCommand"),
    )
    download_timeout: float = 90.0
    conversion_timeout: float = 300.0
    transcoder: str = "ffmpeg"

    # -- Directories --
    work_dir: Path = Path("/var/lib/audio-resolver/work")
    storage_dir: Path = Path("/var/lib/audio-resolver/storage")
    log_dir: Path = Path("/var/log/audio-resolver")
    db_path: Path = Path("/var/lib/audio-resolver/locations.db")

    # -- Behavior --
    max_workers: int = 0  # 0 = auto (CPU-based)
    log_level: str = "INFO"

    @field_validator("audio_command", mode="before")
    @classmethod
    def _split_command(cls, value):
        """Accept a JSON list or a whitespace-separated command string."""
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                return json.loads(stripped)
            return stripped.split()
        return value

    @field_validator("audio_format")
    @classmethod
    def _normalize_format(cls, value: str) -> str:
        return value.strip().lstrip(".").lower()

    @property
    def quota_timeout_ms(self) -> int:
        return self.quota_timeout_minutes * 60 * 1000

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        for d in (
            self.work_dir,
            self.storage_dir,
            self.log_dir,
            self.db_path.parent,
        ):
            d.mkdir(parents=True, exist_ok=True)

    def setup_logging(self) -> None:
        """Configure loguru for the resolver."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<12} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", DEFAULT_LOG_STAGE)
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.log_level.upper(),
            filter=_default_extra,
        )

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_dir / "resolver.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )
