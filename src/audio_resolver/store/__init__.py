"""Reference Database and Storage collaborators.

Submodules:
    sqlite_db     -- SQLite-backed audio location cache (WAL, per-thread connections)
    local_storage -- Directory-backed artifact/log storage
"""
