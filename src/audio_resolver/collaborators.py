"""Contracts for the Database and Storage collaborators.

The resolver only reads and writes through these; the persistent
implementations live elsewhere (see `store` for the reference ones).
"""

from __future__ import annotations

from typing import BinaryIO, Protocol

from .models import RequesterInfo, StorageKind


class Database(Protocol):
    def store_audio_location(
        self, track_id: str, url: str, requester: RequesterInfo | None = None
    ) -> None: ...

    def provide_audio_location(
        self, track_id: str, requester: RequesterInfo | None = None
    ) -> str | None: ...


class Storage(Protocol):
    def store(
        self,
        name: str,
        kind: StorageKind,
        data: BinaryIO,
        mime_type: str,
        requester: RequesterInfo | None = None,
    ) -> bool: ...

    def safe_provide(self, name: str, kind: StorageKind, sink: BinaryIO) -> bool: ...
