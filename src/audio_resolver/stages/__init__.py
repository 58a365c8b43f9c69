"""Acquisition stages run after the arbiter has picked a candidate.

Pipeline order: scratch -> download -> convert (only when needed) -> persist

Stages:
    scratch -- Allocates a per-attempt scratch directory named by a random
               id and derives every temp path from it (raw download, .part
               marker, target-format output, download and conversion logs).
               Releasing the scratch deletes all of them exactly once,
               whichever way the attempt ends.
    download -- Runs the configured download command as a subprocess with
                combined output captured in the download log. Kills the
                process once it overruns the timeout. Returns the
                target-format artifact when the tool produced it, otherwise
                None so the convert stage can try. Also scans the log for
                the canonical video id.
    convert -- Fallback when the downloader left a raw file but no
               target-format file. Requires the raw file and an installed
               transcoder (ffmpeg); one attempt, no retries.
    persist -- Writes the canonical location to the Database, the artifact
               and diagnostic logs to Storage.
"""
