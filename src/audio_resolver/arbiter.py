"""Resolution arbiter -- runs search strategies in priority order under the quota policy."""

from __future__ import annotations

from typing import Protocol, Sequence

from loguru import logger

from .models import ANONYMOUS, RequesterInfo, SearchCandidate, StrategyName, TrackQuery
from .quota import QuotaGuard

log = logger.bind(stage="arbiter")


class SearchStrategy(Protocol):
    name: StrategyName
    uses_quota: bool

    def search(
        self,
        query_text: str,
        target_ms: int,
        requester: RequesterInfo = ANONYMOUS,
    ) -> SearchCandidate | None: ...


class ResolutionArbiter:
    """Picks a candidate by trying strategies one at a time.

    Strategies are ordered cheapest first. Those flagged `uses_quota` are
    skipped while the QuotaGuard reports the primary API as exhausted. The
    first strategy to return a candidate wins; later ones are never run.
    """

    def __init__(self, strategies: Sequence[SearchStrategy], quota: QuotaGuard) -> None:
        self.strategies = list(strategies)
        self.quota = quota

    def resolve(
        self, query: TrackQuery, requester: RequesterInfo = ANONYMOUS
    ) -> SearchCandidate | None:
        """Return the best candidate for `query`, or None when nothing matched."""
        query_text = query.query_text
        for strategy in self.strategies:
            if strategy.uses_quota and not self.quota.is_available():
                log.debug(
                    f"[{requester.user_uid}] Skipping {strategy.name}: quota exhausted"
                )
                continue

            try:
                candidate = strategy.search(query_text, query.duration_ms, requester)
            except Exception:
                log.exception(
                    f"[{requester.user_uid}] {strategy.name} raised while searching "
                    f"for {query_text!r}"
                )
                candidate = None

            if candidate is not None:
                log.debug(
                    f"[{requester.user_uid}] Settled on {candidate.url} "
                    f"({candidate.duration_ms}ms via {strategy.name})"
                )
                return candidate

            log.info(
                f"[{requester.user_uid}] Searches for {query_text!r} using "
                f"{strategy.name} turned up nothing"
            )

        log.info(f"[{requester.user_uid}] No audio source found for {query.id}")
        return None
