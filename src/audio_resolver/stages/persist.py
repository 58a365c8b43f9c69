"""Persist stage -- hands the location, artifact and logs to the collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from ..errors import StorageError
from ..models import (
    ANONYMOUS,
    LOG_MIME_TYPE,
    DownloadArtifact,
    RequesterInfo,
    ResolvedLocation,
    StorageKind,
    mime_type_for,
)
from ..sanitize import storage_name

if TYPE_CHECKING:
    from ..collaborators import Database, Storage
    from .scratch import Scratch

log = logger.bind(stage="persist")


def store_location(
    db: Database, location: ResolvedLocation, requester: RequesterInfo = ANONYMOUS
) -> None:
    """Cache the canonical URL so the next lookup for the track is a fast-path hit."""
    log.debug(
        f"[{requester.user_uid}] Storing location {location.url} for {location.track_id}"
    )
    db.store_audio_location(location.track_id, location.url, requester)


def store_artifact(
    storage: Storage,
    track_id: str,
    artifact: DownloadArtifact,
    requester: RequesterInfo = ANONYMOUS,
) -> str:
    """Store the artifact bytes and delete the temp file. Returns the storage name.

    Raises StorageError if Storage refuses the artifact.
    """
    name = storage_name(track_id, artifact.format)
    try:
        with open(artifact.path, "rb") as fh:
            stored = storage.store(
                name,
                StorageKind.AUDIO,
                fh,
                mime_type_for(artifact.format),
                requester,
            )
    finally:
        artifact.path.unlink(missing_ok=True)

    if not stored:
        raise StorageError(f"Storage rejected {name}")
    log.info(f"[{requester.user_uid}] Stored {name}")
    return name


def store_logs(
    storage: Storage, scratch: Scratch, requester: RequesterInfo = ANONYMOUS
) -> None:
    """Store the download and conversion logs as diagnostics, then delete them.

    Runs on every exit path, so a Storage failure here is logged rather
    than allowed to replace the attempt's real outcome.
    """
    for path in (scratch.download_log, scratch.conversion_log):
        if not path.is_file():
            continue
        try:
            with open(path, "rb") as fh:
                storage.store(path.name, StorageKind.LOG, fh, LOG_MIME_TYPE, requester)
        except Exception:
            log.exception(f"[{requester.user_uid}] Failed to store log {path.name}")
        finally:
            path.unlink(missing_ok=True)
