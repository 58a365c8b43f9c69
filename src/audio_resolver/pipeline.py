"""Audio resolution pipeline and its bounded worker pool.

A resolution runs: cache fast-path -> arbiter -> download -> convert (only
when the download left no target-format file) -> persist. Every blocking
step runs on a worker thread; the pool size bounds how many downloads and
searches are in flight at once.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import BinaryIO, Iterable

from loguru import logger

from .arbiter import ResolutionArbiter, SearchStrategy
from .collaborators import Database, Storage
from .config import ResolverConfig
from .errors import ConfigError, ResolverError, outcome_for
from .models import (
    ANONYMOUS,
    BatchResult,
    Outcome,
    RequesterInfo,
    ResolutionResult,
    ResolvedLocation,
    SearchCandidate,
    StorageKind,
    TrackQuery,
)
from .process import ProcessRunner, SubprocessRunner
from .quota import QuotaGuard
from .search.youtube_api import YouTubeApiSearch
from .search.youtube_search import YouTubeScrapeSearch
from .stages import convert, download, persist
from .stages.scratch import Scratch, attempt_scratch

log = logger.bind(stage="pipeline")


def build_strategies(config: ResolverConfig, quota: QuotaGuard) -> list[SearchStrategy]:
    """Strategies in priority order. The keyed API is only included with a key."""
    strategies: list[SearchStrategy] = []
    if config.api_key:
        strategies.append(
            YouTubeApiSearch(
                config.api_key,
                quota,
                region_code=config.region_code,
                max_results=config.max_results,
            )
        )
    else:
        log.warning(
            "No API key provided. Only yt-dlp search will be used to find audio sources."
        )
    strategies.append(YouTubeScrapeSearch(max_results=config.max_results))
    return strategies


class AudioResolver:
    """Resolves tracks to stored audio, one independent attempt per request.

    Attributes:
        config: Resolver configuration
        database: Location cache collaborator
        storage: Artifact/log storage collaborator
        quota: Shared QuotaGuard for the primary search API
    """

    def __init__(
        self,
        config: ResolverConfig,
        database: Database,
        storage: Storage,
        quota: QuotaGuard | None = None,
        strategies: list[SearchStrategy] | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        if not config.audio_command:
            raise ConfigError("audio_command must name a download command")
        self.config = config
        self.database = database
        self.storage = storage
        self.quota = quota or QuotaGuard(window_ms=config.quota_timeout_ms)
        if strategies is None:
            strategies = build_strategies(config, self.quota)
        self.arbiter = ResolutionArbiter(strategies, self.quota)
        self.runner = runner or SubprocessRunner()
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

        if config.detect_region:
            for strategy in self.arbiter.strategies:
                if isinstance(strategy, YouTubeApiSearch):
                    self.executor.submit(strategy.refresh_region_code)

    # -- Worker pool --

    @property
    def executor(self) -> ThreadPoolExecutor:
        """Worker pool, created on first use. Safe to call from many threads."""
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._calculate_max_workers(),
                    thread_name_prefix="resolver",
                )
            return self._executor

    def _calculate_max_workers(self) -> int:
        """Worker threads for blocking search/download work.

        Returns:
            Number of worker threads to use
        """
        if self.config.max_workers > 0:
            return self.config.max_workers
        cpu_count = os.cpu_count() or 1
        # Mostly waiting on the network and child processes
        return max(2, min(16, cpu_count * 2))

    def close(self) -> None:
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> AudioResolver:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- Resolution --

    def provide_location(
        self, query: TrackQuery, requester: RequesterInfo = ANONYMOUS
    ) -> str | None:
        """Cache fast-path: the previously resolved URL for this track, if any."""
        url = self.database.provide_audio_location(query.id, requester)
        if url is not None:
            log.debug(f"[{requester.user_uid}] Using cached location for {query.id}")
        return url

    def resolve(
        self,
        query: TrackQuery,
        requester: RequesterInfo = ANONYMOUS,
        sink: BinaryIO | None = None,
        use_cache: bool = True,
    ) -> ResolutionResult:
        """Resolve one track, short-circuiting on a cached location."""
        if use_cache:
            cached = self.provide_location(query, requester)
            if cached is not None:
                return ResolutionResult(outcome=Outcome.CACHED, url=cached)
        return self.provide(query, requester, sink)

    def provide(
        self,
        query: TrackQuery,
        requester: RequesterInfo = ANONYMOUS,
        sink: BinaryIO | None = None,
    ) -> ResolutionResult:
        """Run search, download, conversion and persistence for one track.

        Never raises for per-attempt failures; they come back as the
        result's outcome. Scratch files are gone by the time this returns.
        """
        log.trace(f"[{requester.user_uid}] Attempting to provide audio for {query.id}")

        candidate = self.arbiter.resolve(query, requester)
        if candidate is None:
            return ResolutionResult(outcome=Outcome.NOT_FOUND)

        try:
            with attempt_scratch(
                self.config.work_dir, query.id, self.config.audio_format
            ) as scratch:
                try:
                    return self._acquire(query, candidate, scratch, requester, sink)
                finally:
                    persist.store_logs(self.storage, scratch, requester)
        except ResolverError as e:
            log.error(f"[{requester.user_uid}] Resolution of {query.id} failed: {e}")
            return ResolutionResult(outcome=outcome_for(e), url=candidate.url)
        except Exception:
            log.exception(
                f"[{requester.user_uid}] Unexpected error resolving {query.id} "
                f"from {candidate.url}"
            )
            return ResolutionResult(outcome=Outcome.ERROR, url=candidate.url)

    def _acquire(
        self,
        query: TrackQuery,
        candidate: SearchCandidate,
        scratch: Scratch,
        requester: RequesterInfo,
        sink: BinaryIO | None,
    ) -> ResolutionResult:
        artifact = download.run(candidate.url, scratch, self.config, self.runner, requester)
        if artifact is None:
            artifact = convert.run(scratch, self.config, self.runner, requester)

        source_url = download.canonical_url(scratch.download_log)
        if source_url is not None:
            persist.store_location(
                self.database, ResolvedLocation(query.id, source_url), requester
            )

        name = persist.store_artifact(self.storage, query.id, artifact, requester)
        if sink is not None and not self.storage.safe_provide(name, StorageKind.AUDIO, sink):
            log.warning(f"[{requester.user_uid}] Stored {name} but could not provide it")

        return ResolutionResult(
            outcome=Outcome.RESOLVED,
            url=source_url or candidate.url,
            storage_name=name,
        )

    # -- Concurrency --

    def submit(
        self,
        query: TrackQuery,
        requester: RequesterInfo = ANONYMOUS,
        sink: BinaryIO | None = None,
    ) -> Future[ResolutionResult]:
        """Queue a resolution on the worker pool without blocking the caller."""
        return self.executor.submit(self.resolve, query, requester, sink)

    def resolve_batch(
        self, queries: Iterable[TrackQuery], requester: RequesterInfo = ANONYMOUS
    ) -> BatchResult:
        """Resolve many tracks concurrently and summarise the outcomes."""
        futures = {self.submit(q, requester): q for q in queries}
        result = BatchResult(total=len(futures))
        if not futures:
            log.warning("No tracks to resolve")
            return result

        for future in as_completed(futures):
            query = futures[future]
            outcome = future.result()
            if outcome.outcome == Outcome.CACHED:
                result.cached += 1
            elif outcome.ok:
                result.resolved += 1
            else:
                result.failed += 1
                log.info(f"Failed: {query.id} ({outcome.outcome})")

        log.info(
            f"Batch complete: {result.resolved} resolved, {result.cached} cached, "
            f"{result.failed} failed of {result.total}"
        )
        return result
