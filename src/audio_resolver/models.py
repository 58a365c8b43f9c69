"""Core enums, constants, and value types for the audio resolver.

Enums:
    Outcome      -- Terminal state of one resolution attempt.
    StorageKind  -- Record kind passed to the Storage collaborator.
    StrategyName -- Which search strategy produced a candidate.
"""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class Outcome(StrEnum):
    CACHED = "cached"
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    DOWNLOAD_FAILED = "download_failed"
    DOWNLOAD_TIMEOUT = "download_timeout"
    CONVERSION_UNAVAILABLE = "conversion_unavailable"
    CONVERSION_FAILED = "conversion_failed"
    STORAGE_FAILED = "storage_failed"
    ERROR = "error"


class StorageKind(StrEnum):
    AUDIO = "audio"
    LOG = "log"


class StrategyName(StrEnum):
    YOUTUBE_API = "youtube_api"
    YOUTUBE_SEARCH = "youtube_search"


VIDEO_LINK_PREFIX = "https://youtu.be/"

# Upper bound on candidates considered per strategy
MAX_RESULTS = 10

DEFAULT_MIME_TYPE = "audio/mpeg"

MIME_TYPES: dict[str, str] = {
    "m4a": "audio/m4a",
    "aac": "audio/aac",
    "mp3": "audio/mpeg",
    "ogg": "audio/ogg",
    "wav": "audio/wav",
}

LOG_MIME_TYPE = "text/plain"


def mime_type_for(audio_format: str) -> str:
    """Media type for an audio format, falling back to audio/mpeg."""
    return MIME_TYPES.get(audio_format.lower(), DEFAULT_MIME_TYPE)


@dataclass(frozen=True)
class TrackQuery:
    """Immutable input to one resolution."""

    id: str
    artist: str
    title: str
    duration_ms: int

    @property
    def query_text(self) -> str:
        return f"{self.artist} - {self.title}"


@dataclass(frozen=True)
class RequesterInfo:
    """Opaque requester context handed through to collaborators."""

    user_uid: str = "anonymous"
    address: str | None = None


ANONYMOUS = RequesterInfo()


@dataclass(frozen=True)
class SearchCandidate:
    url: str
    duration_ms: int
    source: StrategyName


@dataclass(frozen=True)
class ResolvedLocation:
    track_id: str
    url: str


@dataclass(frozen=True)
class DownloadArtifact:
    path: Path
    format: str


@dataclass(frozen=True)
class ResolutionResult:
    """What the caller gets back from a resolution attempt."""

    outcome: Outcome
    url: str | None = None
    storage_name: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in (Outcome.CACHED, Outcome.RESOLVED)


@dataclass
class BatchResult:
    """Result summary from a batch resolution run."""

    resolved: int = 0
    cached: int = 0
    failed: int = 0
    total: int = 0
