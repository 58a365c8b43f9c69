"""CLI entry point for the audio resolver."""

import sys
from pathlib import Path

import click
from loguru import logger

from .config import ResolverConfig
from .errors import ConfigError
from .models import RequesterInfo, TrackQuery
from .pipeline import AudioResolver
from .store.local_storage import LocalStorage
from .store.sqlite_db import SQLiteLocationDB

log = logger.bind(stage="cli")


@click.command()
@click.option("--id", "track_id", required=True, help="Track id used as the cache key.")
@click.option("--artist", required=True, help="Track artist.")
@click.option("--title", required=True, help="Track title.")
@click.option(
    "--duration-ms",
    type=click.IntRange(min=0),
    required=True,
    help="Track duration in milliseconds; the closest-length video wins.",
)
@click.option("--format", "audio_format", default=None, help="Target audio format (default: m4a).")
@click.option("--no-cache", is_flag=True, help="Ignore any cached location and resolve again.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to .env file.",
)
def main(
    track_id: str,
    artist: str,
    title: str,
    duration_ms: int,
    audio_format: str | None,
    no_cache: bool,
    verbose: bool,
    config_file: str | None,
) -> None:
    """Find, download and store audio for a track by artist, title and length."""
    # Pass CLI flags as kwargs to avoid env pollution
    config_kwargs: dict = {}
    if config_file:
        config_kwargs["_env_file"] = Path(config_file)
    if audio_format:
        config_kwargs["audio_format"] = audio_format
    if verbose:
        config_kwargs["log_level"] = "DEBUG"

    config = ResolverConfig(**config_kwargs)
    config.setup_logging()
    config.ensure_dirs()

    query = TrackQuery(id=track_id, artist=artist, title=title, duration_ms=duration_ms)
    requester = RequesterInfo(user_uid="cli")

    db = SQLiteLocationDB(config.db_path)
    try:
        with AudioResolver(config, db, LocalStorage(config.storage_dir)) as resolver:
            log.info(f"Resolving {query.id}: {query.query_text!r} ({duration_ms}ms)")
            result = resolver.resolve(query, requester, use_cache=not no_cache)
    except ConfigError as e:
        raise click.UsageError(str(e))
    finally:
        db.close()

    click.echo(f"{result.outcome.value}\t{result.url or '-'}")
    if result.storage_name:
        click.echo(f"stored as {result.storage_name}")
    if not result.ok:
        sys.exit(1)
