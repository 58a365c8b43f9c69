"""Fallback search strategy -- unauthenticated YouTube search through yt-dlp.

The search extractor hands back a lazy stream of flat result entries; we
consume it a page at a time, keep only on-demand videos with a known
duration, and stop once ``max_results`` are collected or the stream runs
out. A failure partway through keeps whatever was already collected.
"""

from __future__ import annotations

from itertools import islice
from typing import Callable, Iterator

from loguru import logger
from yt_dlp import YoutubeDL

from ..models import (
    ANONYMOUS,
    MAX_RESULTS,
    RequesterInfo,
    SearchCandidate,
    StrategyName,
)
from .ranking import pick_closest

log = logger.bind(stage="youtube_search")

WATCH_URL = "https://www.youtube.com/watch?v="

# Size of the result pool requested from the extractor; pages are cut from it
SEARCH_POOL_SIZE = 50

PAGE_SIZE = 20

# Live, scheduled and just-ended broadcasts are not on-demand videos
_NOT_ON_DEMAND = frozenset({"is_live", "is_upcoming", "post_live"})

Pager = Callable[[str], Iterator[list[dict]]]


def search_pages(
    query: str,
    page_size: int = PAGE_SIZE,
    pool_size: int = SEARCH_POOL_SIZE,
) -> Iterator[list[dict]]:
    """Yield pages of raw flat search entries for `query`.

    Raises whatever the extractor raises, on the first page (search could
    not start) or on a later one (pagination broke mid-walk).
    """
    opts = {
        "skip_download": True,
        "quiet": True,
        "no_warnings": True,
        "extract_flat": "in_playlist",
        "cachedir": False,
        "socket_timeout": 10,
    }
    with YoutubeDL(opts) as ydl:
        info = ydl.extract_info(
            f"ytsearch{pool_size}:{query}", download=False, process=False
        )
        entries = iter((info or {}).get("entries") or [])
        while True:
            page = list(islice(entries, page_size))
            if not page:
                return
            yield page


def _to_candidate(entry: object) -> SearchCandidate | None:
    """Convert a flat entry to a candidate, or None if it isn't an on-demand video."""
    if not isinstance(entry, dict):
        return None
    if entry.get("live_status") in _NOT_ON_DEMAND:
        return None
    duration = entry.get("duration")
    if not isinstance(duration, (int, float)) or duration <= 0:
        return None

    url = entry.get("url")
    if not isinstance(url, str) or not url.startswith("http"):
        video_id = entry.get("id")
        if not isinstance(video_id, str) or not video_id:
            return None
        url = f"{WATCH_URL}{video_id}"

    return SearchCandidate(
        url=url,
        duration_ms=int(duration * 1000),
        source=StrategyName.YOUTUBE_SEARCH,
    )


class YouTubeScrapeSearch:
    """Fallback strategy; needs no key and never touches the quota."""

    name = StrategyName.YOUTUBE_SEARCH
    uses_quota = False

    def __init__(self, pager: Pager = search_pages, max_results: int = MAX_RESULTS) -> None:
        self.pager = pager
        self.max_results = max_results

    def collect(
        self, query_text: str, requester: RequesterInfo = ANONYMOUS
    ) -> list[SearchCandidate]:
        """Walk result pages until `max_results` videos are collected."""
        collected: list[SearchCandidate] = []
        pages = None
        started = False
        try:
            pages = self.pager(query_text)
            for page in pages:
                started = True
                for entry in page:
                    candidate = _to_candidate(entry)
                    if candidate is not None:
                        collected.append(candidate)
                if len(collected) >= self.max_results:
                    break
        except Exception as e:
            if not started:
                log.error(
                    f"[{requester.user_uid}] Failed to acquire search results "
                    f"for {query_text!r}: {e}"
                )
                return []
            log.warning(
                f"[{requester.user_uid}] Failed to acquire additional search "
                f"pages for {query_text!r}: {e}"
            )
        finally:
            close = getattr(pages, "close", None)
            if close is not None:
                close()
        return collected[: self.max_results]

    def search(
        self,
        query_text: str,
        target_ms: int,
        requester: RequesterInfo = ANONYMOUS,
    ) -> SearchCandidate | None:
        return pick_closest(self.collect(query_text, requester), target_ms)
