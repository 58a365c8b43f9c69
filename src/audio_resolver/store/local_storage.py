"""Directory-backed Storage collaborator: files under <root>/<kind>/<name>."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO

from loguru import logger

from ..models import RequesterInfo, StorageKind
from ..sanitize import sanitize_filename

log = logger.bind(stage="storage")


class LocalStorage:
    def __init__(self, root: Path) -> None:
        self.root = root

    def path_for(self, name: str, kind: StorageKind) -> Path:
        safe = sanitize_filename(name)
        if not safe:
            raise ValueError(f"Unusable storage name: {name!r}")
        return self.root / kind.value / safe

    def store(
        self,
        name: str,
        kind: StorageKind,
        data: BinaryIO,
        mime_type: str,
        requester: RequesterInfo | None = None,
    ) -> bool:
        """Write `data` atomically (temp file + rename). Returns False on I/O error."""
        dest = self.path_for(name, kind)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=".store-")
            try:
                with os.fdopen(fd, "wb") as out:
                    shutil.copyfileobj(data, out)
                os.replace(tmp_name, dest)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            log.error(f"Failed to store {kind.value}/{name}: {e}")
            return False
        log.debug(f"Stored {kind.value}/{dest.name} ({mime_type})")
        return True

    def safe_provide(self, name: str, kind: StorageKind, sink: BinaryIO) -> bool:
        """Copy a stored record into `sink`. False if it is missing or unreadable."""
        try:
            path = self.path_for(name, kind)
        except ValueError:
            return False
        if not path.is_file():
            return False
        try:
            with open(path, "rb") as fh:
                shutil.copyfileobj(fh, sink)
        except OSError as e:
            log.error(f"Failed to provide {kind.value}/{name}: {e}")
            return False
        return True
