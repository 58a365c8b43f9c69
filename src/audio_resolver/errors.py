"""Exception hierarchy and outcome mapping for the audio resolver."""

from .models import Outcome


class ResolverError(Exception):
    """Base exception for all resolver errors."""

    outcome: Outcome = Outcome.ERROR


class ConfigError(ResolverError):
    """Invalid or missing configuration."""


class SearchError(ResolverError):
    """A search call failed or returned a payload we could not parse."""


class QuotaExceededError(SearchError):
    """The primary search API refused the call (HTTP 403)."""


class DownloadError(ResolverError):
    """The downloader finished without leaving a usable artifact."""

    outcome = Outcome.DOWNLOAD_FAILED


class DownloadTimeoutError(DownloadError):
    """The download subprocess overran its wall-clock bound and was killed."""

    outcome = Outcome.DOWNLOAD_TIMEOUT

    def __init__(self, url: str, timeout: float) -> None:
        super().__init__(f"download of {url} exceeded {timeout:g}s")
        self.url = url
        self.timeout = timeout


class ConversionUnavailableError(ResolverError):
    """No transcoder is installed to convert the raw download."""

    outcome = Outcome.CONVERSION_UNAVAILABLE


class ConversionFailedError(ResolverError):
    """The transcoder ran but did not produce the target file."""

    outcome = Outcome.CONVERSION_FAILED

    def __init__(self, message: str, log_name: str) -> None:
        super().__init__(f"{message} (check {log_name})")
        self.log_name = log_name


class StorageError(ResolverError):
    """The Storage collaborator rejected the final artifact."""

    outcome = Outcome.STORAGE_FAILED


class ExternalToolError(ResolverError):
    """An external subprocess (downloader, ffmpeg) failed."""

    def __init__(self, tool: str, exit_code: int, output: str = "") -> None:
        super().__init__(f"{tool} exited with code {exit_code}: {output}")
        self.tool = tool
        self.exit_code = exit_code
        self.output = output


def outcome_for(exc: BaseException) -> Outcome:
    """Map an exception raised inside the pipeline to a result outcome."""
    if isinstance(exc, ResolverError):
        return exc.outcome
    return Outcome.ERROR
