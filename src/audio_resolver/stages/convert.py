"""Convert stage -- ffmpeg fallback when the downloader left only a raw file."""

from __future__ import annotations

import functools
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import (
    ConversionFailedError,
    ConversionUnavailableError,
    DownloadError,
    ExternalToolError,
)
from ..models import ANONYMOUS, DownloadArtifact, RequesterInfo

if TYPE_CHECKING:
    from ..config import ResolverConfig
    from ..process import ProcessRunner
    from .scratch import Scratch

log = logger.bind(stage="convert")


@functools.cache
def transcoder_installed(binary: str = "ffmpeg") -> bool:
    """Check once per binary whether the transcoder can be executed."""
    try:
        result = subprocess.run(
            [binary, "-version"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired):
        log.info(f"{binary} not available")
        return False
    installed = result.returncode == 0
    log.info(f"{binary} installed: {installed}")
    return installed


def convert(
    input_path: Path,
    output_path: Path,
    log_path: Path,
    runner: ProcessRunner,
    binary: str = "ffmpeg",
    timeout: float = 300.0,
) -> None:
    """Transcode `input_path` to `output_path`, logging to `log_path`.

    The output container/codec is chosen by ffmpeg from the output suffix.
    Raises ExternalToolError if ffmpeg fails or overruns.
    """
    cmd = [binary, "-y", "-i", str(input_path), "-vn", str(output_path)]
    outcome = runner.run(cmd, log_path, timeout)
    if outcome.timed_out:
        raise ExternalToolError(binary, -1, f"timed out after {timeout:g}s")
    if outcome.returncode != 0:
        raise ExternalToolError(binary, outcome.returncode or -1, f"see {log_path.name}")


def run(
    scratch: Scratch,
    config: ResolverConfig,
    runner: ProcessRunner,
    requester: RequesterInfo = ANONYMOUS,
) -> DownloadArtifact:
    """Produce the target-format artifact from the raw download.

    Raises DownloadError if there is no raw file to convert,
    ConversionUnavailableError without a transcoder, and
    ConversionFailedError if the single conversion attempt fails.
    """
    if not scratch.raw.exists():
        log.error(
            f"[{requester.user_uid}] {scratch.raw.name} does not exist, what happened?"
        )
        raise DownloadError(f"Downloader left no output for attempt {scratch.attempt_id}")

    if not transcoder_installed(config.transcoder):
        log.error(
            f"[{requester.user_uid}] {config.transcoder} not installed, "
            f"cannot convert {scratch.raw.name}"
        )
        raise ConversionUnavailableError(f"{config.transcoder} is not installed")

    log_name = scratch.conversion_log.name
    try:
        convert(
            scratch.raw,
            scratch.target,
            scratch.conversion_log,
            runner,
            binary=config.transcoder,
            timeout=config.conversion_timeout,
        )
    except (ExternalToolError, OSError) as e:
        log.error(
            f"[{requester.user_uid}] Failed to convert {scratch.raw.name} to "
            f"{scratch.target.name}. Check {log_name}"
        )
        raise ConversionFailedError(f"Conversion failed: {e}", log_name) from e

    if not scratch.target.exists():
        log.error(
            f"[{requester.user_uid}] {scratch.target.name} does not exist, check {log_name}"
        )
        raise ConversionFailedError("Transcoder produced no output", log_name)

    return DownloadArtifact(path=scratch.target, format=config.audio_format)
