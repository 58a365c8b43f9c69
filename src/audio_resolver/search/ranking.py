"""Duration-based candidate selection shared by every search strategy."""

import re
from typing import Iterable

from ..models import SearchCandidate

ISO8601_DURATION_PATTERN = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def pick_closest(
    candidates: Iterable[SearchCandidate], target_ms: int
) -> SearchCandidate | None:
    """Return the candidate whose duration is nearest to `target_ms`.

    Ties go to the earliest candidate in input order. None when empty.
    """
    return min(
        candidates,
        key=lambda c: abs(target_ms - c.duration_ms),
        default=None,
    )


def parse_iso8601_duration_ms(raw_value: object) -> int | None:
    """Convert an ISO-8601 duration such as ``PT3M25S`` to milliseconds."""
    if not isinstance(raw_value, str):
        return None
    matched = ISO8601_DURATION_PATTERN.match(raw_value.strip())
    if matched is None:
        return None

    days = int(matched.group("days") or 0)
    hours = int(matched.group("hours") or 0)
    minutes = int(matched.group("minutes") or 0)
    seconds = int(matched.group("seconds") or 0)
    total_seconds = days * 86_400 + hours * 3_600 + minutes * 60 + seconds
    return total_seconds * 1000
