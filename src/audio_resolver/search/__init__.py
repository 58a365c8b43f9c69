"""Search strategies used to locate a track's audio.

Submodules:
    youtube_api    -- Primary strategy: YouTube Data API v3 (key + quota)
    youtube_search -- Fallback strategy: paginated yt-dlp search, no key
    ranking        -- Duration-based candidate selection, ISO-8601 durations
"""
