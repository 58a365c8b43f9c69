"""Shared test doubles: in-memory collaborators and a scripted process runner."""

from pathlib import Path

import pytest

from audio_resolver.config import ResolverConfig
from audio_resolver.process import ProcessOutcome

# Env vars that pydantic-settings reads -- cleared so tests see defaults
_CONFIG_ENV_VARS = [
    "API_KEY", "APIKEY", "AUDIO_FORMAT", "AUDIOFORMAT", "AUDIO_COMMAND",
    "AUDIOCOMMAND", "REGION_CODE", "DETECT_REGION", "MAX_RESULTS",
    "QUOTA_TIMEOUT_MINUTES", "DOWNLOAD_TIMEOUT", "CONVERSION_TIMEOUT",
    "TRANSCODER", "WORK_DIR", "STORAGE_DIR", "LOG_DIR", "DB_PATH",
    "MAX_WORKERS", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in _CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class FakeDatabase:
    def __init__(self, locations=None):
        self.locations = dict(locations or {})
        self.stored = []
        self.lookups = []

    def store_audio_location(self, track_id, url, requester=None):
        self.stored.append((track_id, url))
        self.locations[track_id] = url

    def provide_audio_location(self, track_id, requester=None):
        self.lookups.append(track_id)
        return self.locations.get(track_id)


class FakeStorage:
    def __init__(self, accept=True):
        self.accept = accept
        self.records = {}
        self.mime_types = {}

    def store(self, name, kind, data, mime_type, requester=None):
        if not self.accept:
            return False
        self.records[(kind, name)] = data.read()
        self.mime_types[(kind, name)] = mime_type
        return True

    def safe_provide(self, name, kind, sink):
        data = self.records.get((kind, name))
        if data is None:
            return False
        sink.write(data)
        return True


class FakeRunner:
    """Process runner double routing on the executable name.

    `download` and `transcode` are callables (cmd, log_path, timeout) ->
    ProcessOutcome; they may write files to simulate the real tools.
    """

    def __init__(self, download=None, transcode=None):
        self.download = download
        self.transcode = transcode
        self.calls = []

    def run(self, cmd, log_path, timeout):
        self.calls.append(list(cmd))
        handler = self.transcode if cmd[0] == "ffmpeg" else self.download
        if handler is None:
            raise AssertionError(f"unexpected command {cmd}")
        return handler(cmd, log_path, timeout)


def download_ok(video_id="dQw4w9WgXcQ", body=b"audio bytes"):
    """Downloader that writes the target-format file and a log naming the video."""

    def handler(cmd, log_path, timeout):
        stem, fmt = cmd[-2], cmd[-1]
        Path(f"{stem}.{fmt}").write_bytes(body)
        Path(f"{stem}.part").write_bytes(b"")
        log_path.write_text(f"[youtube] Extracting\nVideo ID: {video_id}\ndone\n")
        return ProcessOutcome(returncode=0)

    return handler


def download_raw_only(body=b"raw bytes"):
    """Downloader that leaves only the raw (pre-conversion) file."""

    def handler(cmd, log_path, timeout):
        Path(cmd[-2]).write_bytes(body)
        log_path.write_text("downloaded raw\n")
        return ProcessOutcome(returncode=0)

    return handler


def download_timeout():
    def handler(cmd, log_path, timeout):
        log_path.write_text("still going...\n")
        Path(f"{cmd[-2]}.part").write_bytes(b"partial")
        return ProcessOutcome(returncode=-9, timed_out=True)

    return handler


def transcode_ok(body=b"converted"):
    def handler(cmd, log_path, timeout):
        Path(cmd[-1]).write_bytes(body)
        log_path.write_text("ffmpeg ok\n")
        return ProcessOutcome(returncode=0)

    return handler


def transcode_fail():
    def handler(cmd, log_path, timeout):
        log_path.write_text("Invalid data found when processing input\n")
        return ProcessOutcome(returncode=1)

    return handler


@pytest.fixture
def fakes():
    """Namespace of doubles so tests can build them without importing conftest."""

    class _Fakes:
        Database = FakeDatabase
        Storage = FakeStorage
        Runner = FakeRunner

    _Fakes.download_ok = staticmethod(download_ok)
    _Fakes.download_raw_only = staticmethod(download_raw_only)
    _Fakes.download_timeout = staticmethod(download_timeout)
    _Fakes.transcode_ok = staticmethod(transcode_ok)
    _Fakes.transcode_fail = staticmethod(transcode_fail)
    return _Fakes


@pytest.fixture
def config(tmp_path):
    return ResolverConfig(
        _env_file=None,
        work_dir=tmp_path / "work",
        storage_dir=tmp_path / "storage",
        log_dir=tmp_path / "logs",
        db_path=tmp_path / "db" / "locations.db",
        audio_command=["fake-dl"],
        detect_region=False,
        max_workers=4,
    )
