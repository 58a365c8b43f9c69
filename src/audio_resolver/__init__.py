"""Audio Resolver -- find, download and cache playable audio for a track.

Core modules:
    config    -- Resolver configuration via pydantic-settings (API key, download
                 command, target format, directories, logging setup)
    cli       -- Click CLI entry point resolving a single track
    pipeline  -- AudioResolver: cache fast-path, then search, download, convert and
                 persist on a bounded worker pool. Per-attempt failures come back as
                 a ResolutionResult outcome, never as exceptions.
    arbiter   -- Runs search strategies in priority order under the quota policy
    quota     -- QuotaGuard: lazy 10-minute backoff after a 403 from the Data API
    process   -- Process runner with hard wall-clock timeout (kill + reap)
    errors    -- Exception hierarchy, mapped to outcomes at the pipeline boundary
    sanitize  -- Filename sanitization for scratch and storage names

Subpackages:
    search -- Search strategies (YouTube Data API, yt-dlp search, duration ranking)
    stages -- Acquisition stages (scratch, download, convert, persist)
    store  -- Reference Database/Storage collaborators (SQLite, local directory)
"""
