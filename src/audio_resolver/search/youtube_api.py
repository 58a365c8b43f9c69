"""YouTube Data API v3 search strategy.

Runs a keyed search for up to ``max_results`` video ids, then one batched
details call to learn their exact durations, and picks the video whose
length is closest to the target. A 403 from either call marks the shared
QuotaGuard so the arbiter skips this strategy until the window elapses.
"""

from __future__ import annotations

import re

import httpx
from loguru import logger

from ..errors import QuotaExceededError, SearchError
from ..models import (
    ANONYMOUS,
    MAX_RESULTS,
    VIDEO_LINK_PREFIX,
    RequesterInfo,
    SearchCandidate,
    StrategyName,
)
from ..quota import QuotaGuard
from .ranking import parse_iso8601_duration_ms, pick_closest

log = logger.bind(stage="youtube_api")

API_BASE = "https://www.googleapis.com/youtube/v3"

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.11; rv:44.0) "
    "Gecko/20100101 Firefox/44.0"
)

REGION_CODE_ENDPOINTS = (
    "https://ipapi.co/country_code",
    "https://ipwho.is/?fields=country_code&output=csv",
    "http://ip-api.com/line?fields=countryCode",
)

_REGION_CODE_RE = re.compile(r"^[A-Za-z]{2}$")


def _get_json(url: str, params: dict, timeout: float) -> dict:
    """GET a Data API endpoint and decode the JSON body.

    Raises QuotaExceededError on 403, SearchError on any other failure.
    """
    try:
        resp = httpx.get(
            url,
            params=params,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
        )
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 403:
            raise QuotaExceededError(f"YouTube Data API returned 403 for {url}") from e
        raise SearchError(f"YouTube Data API error: {e}") from e
    except httpx.HTTPError as e:
        raise SearchError(f"YouTube Data API error: {e}") from e

    try:
        data = resp.json()
    except ValueError as e:
        raise SearchError(f"Malformed response from {url}") from e
    if not isinstance(data, dict):
        raise SearchError(f"Unexpected payload from {url}")
    return data


def search_video_ids(
    query: str,
    api_key: str,
    region_code: str = "US",
    max_results: int = MAX_RESULTS,
    timeout: float = 30.0,
) -> list[str]:
    """Return up to `max_results` video ids for `query`, in API order."""
    data = _get_json(
        f"{API_BASE}/search",
        {
            "part": "snippet",
            "q": query,
            "maxResults": str(max_results),
            "key": api_key,
            "type": "video",
            "regionCode": region_code,
        },
        timeout,
    )
    items = data.get("items")
    if not isinstance(items, list):
        raise SearchError("Search response has no items list")

    ids = []
    for item in items:
        if not isinstance(item, dict):
            continue
        id_block = item.get("id")
        video_id = id_block.get("videoId") if isinstance(id_block, dict) else None
        if isinstance(video_id, str) and video_id:
            ids.append(video_id)
    return ids


def fetch_durations(
    video_ids: list[str], api_key: str, timeout: float = 30.0
) -> list[tuple[str, int]]:
    """Batched details lookup: (video_id, duration_ms) in response order.

    Videos whose duration cannot be parsed are dropped.
    """
    data = _get_json(
        f"{API_BASE}/videos",
        {
            "part": "contentDetails,snippet",
            "id": ",".join(video_ids),
            "key": api_key,
        },
        timeout,
    )
    items = data.get("items")
    if not isinstance(items, list):
        raise SearchError("Videos response has no items list")

    durations = []
    for item in items:
        if not isinstance(item, dict):
            continue
        video_id = item.get("id")
        details = item.get("contentDetails") or {}
        duration_ms = parse_iso8601_duration_ms(
            details.get("duration") if isinstance(details, dict) else None
        )
        if isinstance(video_id, str) and duration_ms is not None:
            durations.append((video_id, duration_ms))
    return durations


def detect_region_code(default: str = "US", timeout: float = 10.0) -> str:
    """Ask public geolocation endpoints for our two-letter country code."""
    for endpoint in REGION_CODE_ENDPOINTS:
        try:
            resp = httpx.get(endpoint, timeout=timeout)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            log.info(f"Failed to acquire region code from {endpoint}: {e}")
            continue
        code = resp.text.strip()
        if _REGION_CODE_RE.match(code):
            return code.upper()
        log.info(f"Unusable region code {code!r} from {endpoint}")
    log.warning(f"Failed to acquire region code for IP. Falling back to {default}")
    return default


class YouTubeApiSearch:
    """Primary, key-authenticated search strategy."""

    name = StrategyName.YOUTUBE_API
    uses_quota = True

    def __init__(
        self,
        api_key: str | None,
        quota: QuotaGuard,
        region_code: str = "US",
        max_results: int = MAX_RESULTS,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.quota = quota
        self.region_code = region_code
        self.max_results = max_results
        self.timeout = timeout

    def refresh_region_code(self) -> str:
        self.region_code = detect_region_code(self.region_code)
        log.debug(f"Using region code {self.region_code}")
        return self.region_code

    def search(
        self,
        query_text: str,
        target_ms: int,
        requester: RequesterInfo = ANONYMOUS,
    ) -> SearchCandidate | None:
        if not self.api_key:
            return None

        try:
            video_ids = search_video_ids(
                query_text,
                self.api_key,
                region_code=self.region_code,
                max_results=self.max_results,
                timeout=self.timeout,
            )
            if not video_ids:
                return None
            durations = fetch_durations(video_ids, self.api_key, timeout=self.timeout)
        except QuotaExceededError as e:
            log.warning(f"[{requester.user_uid}] Hit quota: {e}")
            self.quota.mark_exhausted()
            return None
        except SearchError as e:
            log.error(f"[{requester.user_uid}] Search for {query_text!r} failed: {e}")
            return None

        candidates = [
            SearchCandidate(
                url=f"{VIDEO_LINK_PREFIX}{video_id}",
                duration_ms=duration_ms,
                source=self.name,
            )
            for video_id, duration_ms in durations
        ]
        return pick_closest(candidates, target_ms)
