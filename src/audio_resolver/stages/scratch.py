"""Scratch stage -- per-attempt temp directory with guaranteed release."""

from __future__ import annotations

import shutil
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from loguru import logger

from ..sanitize import sanitize_filename

log = logger.bind(stage="scratch")


class Scratch:
    """Temp paths owned by exactly one resolution attempt.

    Every path lives under `work_dir/<attempt_id>/`, so concurrent attempts
    (even for the same track) never share a file name.
    """

    def __init__(self, work_dir: Path, track_id: str, audio_format: str) -> None:
        self.attempt_id = uuid.uuid4().hex
        self.audio_format = audio_format
        self.dir = work_dir / self.attempt_id

        stem = f"{self.attempt_id}.tmp"
        label = sanitize_filename(track_id) or "track"
        self.raw = self.dir / stem
        self.part = self.dir / f"{stem}.part"
        self.target = self.dir / f"{stem}.{audio_format}"
        self.download_log = self.dir / f"{label}-{self.attempt_id}.log"
        self.conversion_log = self.dir / f"{label}-{self.attempt_id}-ffmpeg.log"
        self._released = False

    @property
    def files(self) -> tuple[Path, ...]:
        return (
            self.raw,
            self.part,
            self.target,
            self.download_log,
            self.conversion_log,
        )

    def create(self) -> None:
        self.dir.mkdir(parents=True, exist_ok=False)

    def release(self) -> None:
        """Delete every temp file and the attempt directory. Idempotent."""
        if self._released:
            return
        self._released = True

        for path in self.files:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                log.warning(f"Failed to delete {path}: {e}")
        # Anything else the downloader dropped in here (fragments, thumbnails)
        shutil.rmtree(self.dir, ignore_errors=True)
        if self.dir.exists():
            log.error(f"Scratch dir survived cleanup: {self.dir}")
        else:
            log.debug(f"Removed scratch dir: {self.dir}")


@contextmanager
def attempt_scratch(
    work_dir: Path, track_id: str, audio_format: str
) -> Iterator[Scratch]:
    """Allocate a Scratch for one attempt and release it on every exit path."""
    scratch = Scratch(work_dir, track_id, audio_format)
    scratch.create()
    try:
        yield scratch
    finally:
        scratch.release()
