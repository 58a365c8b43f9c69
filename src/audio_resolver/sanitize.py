"""Filename sanitization for scratch and storage names."""

import re
from pathlib import Path

from loguru import logger

log = logger.bind(stage="sanitize")


def sanitize_filename(filename: str) -> str:
    """Sanitize a filename component (not a full path).

    Replaces unsafe chars with underscores, removes leading dots,
    collapses repeated underscores, truncates to 255 bytes preserving extension.
    """
    # Replace unsafe characters
    sanitized = re.sub(r'[/\\:"*?<>|;\x00-\x1f]+', '_', filename)
    # Remove leading dots/underscores
    sanitized = re.sub(r'^[._]+', '', sanitized)
    # Remove trailing dots/underscores
    sanitized = re.sub(r'[._]+$', '', sanitized)
    # Collapse repeated underscores
    sanitized = re.sub(r'__+', '_', sanitized)

    # Truncate to 255 bytes preserving extension
    original_len = len(sanitized.encode('utf-8'))
    if original_len > 255:
        p = Path(sanitized)
        ext = p.suffix
        stem = p.stem
        if ext:
            while len((stem + ext).encode('utf-8')) > 255 and stem:
                stem = stem[:-1]
            sanitized = stem + ext
        else:
            while len(sanitized.encode('utf-8')) > 255 and sanitized:
                sanitized = sanitized[:-1]
        log.debug(f"Truncated filename from {original_len} to {len(sanitized.encode('utf-8'))} bytes: '{sanitized}'")

    return sanitized


def storage_name(track_id: str, audio_format: str) -> str:
    """Deterministic Storage name for a track's artifact."""
    return f"{track_id}.{audio_format}"
