"""Download stage -- runs the configured download command with a hard timeout."""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from loguru import logger

from ..errors import DownloadError, DownloadTimeoutError
from ..models import ANONYMOUS, VIDEO_LINK_PREFIX, DownloadArtifact, RequesterInfo

if TYPE_CHECKING:
    from ..config import ResolverConfig
    from ..process import ProcessRunner
    from .scratch import Scratch

log = logger.bind(stage="download")

VIDEO_ID_RE = re.compile(r"Video ID: ([\w-]{11})")


def build_command(
    template: Sequence[str], url: str, output_stem: Path, audio_format: str
) -> list[str]:
    """Append the per-attempt arguments to the configured command."""
    return [*template, url, str(output_stem), audio_format]


def run(
    url: str,
    scratch: Scratch,
    config: ResolverConfig,
    runner: ProcessRunner,
    requester: RequesterInfo = ANONYMOUS,
) -> DownloadArtifact | None:
    """Download `url` into the scratch area.

    Returns the target-format artifact if the tool produced one, or None
    when only a raw file (or nothing) was left behind.

    Raises DownloadTimeoutError when the process overran and was killed,
    DownloadError when it could not be started at all.
    """
    cmd = build_command(config.audio_command, url, scratch.raw, config.audio_format)
    log.debug(f"[{requester.user_uid}] {' '.join(cmd)}")

    try:
        outcome = runner.run(cmd, scratch.download_log, config.download_timeout)
    except OSError as e:
        raise DownloadError(f"Could not start downloader {cmd[0]!r}: {e}") from e

    if outcome.timed_out:
        log.error(
            f"[{requester.user_uid}] Forcibly destroyed the download process for {url}"
        )
        raise DownloadTimeoutError(url, config.download_timeout)

    if outcome.returncode != 0:
        log.warning(
            f"[{requester.user_uid}] Downloader exited with {outcome.returncode} "
            f"for {url}, check {scratch.download_log.name}"
        )

    if scratch.target.exists():
        return DownloadArtifact(path=scratch.target, format=config.audio_format)

    log.warning(
        f"[{requester.user_uid}] {scratch.target.name} does not exist, "
        f"attempting to convert"
    )
    return None


def extract_video_id(log_path: Path) -> str | None:
    """Last `Video ID: xxxxxxxxxxx` reported in the download log."""
    if not log_path.is_file():
        return None

    video_id = None
    with open(log_path, encoding="utf-8", errors="replace") as fh:
        for line in fh:
            match = VIDEO_ID_RE.search(line)
            if match:
                video_id = match.group(1)
    return video_id


def canonical_url(log_path: Path) -> str | None:
    """Canonical short link for the video the downloader actually fetched."""
    video_id = extract_video_id(log_path)
    if video_id is None:
        return None
    return f"{VIDEO_LINK_PREFIX}{video_id}"
