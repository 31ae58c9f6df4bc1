#!/usr/bin/env python3
"""spotivy - download a Spotify user's playlists from YouTube"""

import fcntl
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from spotivy.clients.fetcher import MediaFetcher
from spotivy.clients.spotify import SpotifyClient
from spotivy.clients.youtube import YouTubeClient, YouTubeAuthError, YouTubeQuotaExceededError
from spotivy.core.config import DEFAULT_CONFIG_FILE, Config, load_config
from spotivy.core.models import CatalogError, ConfigError, Intent, LedgerError
from spotivy.core.sync_engine import SyncEngine

LOCK_NAME = ".spotivy.lock"

logger = logging.getLogger(__name__)


def package_version() -> str:
    try:
        return version("spotivy")
    except PackageNotFoundError:
        return "dev"


def setup_logging(debug: bool = False, log_file: Path | None = None) -> None:
    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


def acquire_lock(output_root: Path) -> int | None:
    """Take the run lock, or return None while another process holds it.

    flock is dropped when its holder exits, so a file left behind by a dead
    run is reused rather than removed.
    """
    lock_file = output_root / LOCK_NAME
    try:
        output_root.mkdir(parents=True, exist_ok=True)
        while True:
            fd = os.open(str(lock_file), os.O_CREAT | os.O_RDWR)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError:
                os.close(fd)
                return None
            # The previous holder may unlink the file between open and flock
            try:
                same_file = os.fstat(fd).st_ino == os.stat(lock_file).st_ino
            except FileNotFoundError:
                same_file = False
            if same_file:
                break
            os.close(fd)

        previous = os.read(fd, 32).decode(errors="replace").strip()
        if previous:
            logger.warning(f"Reusing stale lock file left by pid {previous}")
        os.ftruncate(fd, 0)
        os.lseek(fd, 0, os.SEEK_SET)
        os.write(fd, f"{os.getpid()}\n".encode())
        return fd
    except OSError as e:
        logger.debug(f"Could not take lock {lock_file}: {e}")
        return None


def release_lock(fd: int, output_root: Path) -> None:
    try:
        # Unlink while still holding the lock so no waiter locks a dead inode
        (output_root / LOCK_NAME).unlink(missing_ok=True)
        fcntl.flock(fd, fcntl.LOCK_UN)
        os.close(fd)
    except OSError as e:
        logger.debug(f"Lock release failed: {e}")


def build_engine(config: Config) -> SyncEngine:
    spotify = SpotifyClient(config.spotify_client_id, config.spotify_client_secret)
    youtube = YouTubeClient(config.youtube_api_key)
    return SyncEngine(spotify, youtube, MediaFetcher())


def run(config: Config, engine_factory=None) -> int:
    options = config.sync_options()
    noun = "videos" if options.intent is Intent.VIDEO else "audios"
    logger.info(f"[spotivy v{package_version()}] Saving {noun} to \"{options.output_root}\"")

    lock_fd = acquire_lock(options.output_root)
    if lock_fd is None:
        logger.warning("Another sync running, exiting")
        return 0

    try:
        engine = (engine_factory or build_engine)(config)
        result = engine.run(config.username, options)
    except YouTubeAuthError as e:
        logger.error(f"YouTube setup failed: {e}")
        return 1
    except CatalogError as e:
        logger.error(f"Spotify catalog failed: {e}")
        return 1
    except LedgerError as e:
        logger.error(f"Ledger error: {e}")
        return 1
    except YouTubeQuotaExceededError as e:
        logger.error(f"Quota exceeded: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1
    finally:
        release_lock(lock_fd, options.output_root)

    if result.errors:
        logger.warning(f"{len(result.errors)} tracks skipped:")
        for error in result.errors:
            logger.warning(f"  {error}")
    logger.info(f"Sync completed: {result.tracks_downloaded} downloaded, "
                f"{result.tracks_skipped} skipped")
    return 0


@click.command()
@click.option("--output", default=None, help='Location where to save the downloaded files (default: "tracks").')
@click.option("--format", "fmt", type=click.Choice([i.value for i in Intent]), default=None,
              help="The format of the file to download (default: video).")
@click.option("--audio", is_flag=True, help="Download as audio.")
@click.option("--debug", is_flag=True, help="Show verbose logs.")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              default=DEFAULT_CONFIG_FILE, show_default=True, help="JSON config file.")
def main(output, fmt, audio, debug, config_path) -> None:
    """Download every playlist of the configured Spotify user."""
    setup_logging(debug)
    try:
        config = load_config(config_path, output=output, fmt=fmt, audio=audio, debug=debug)
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    if config.debug or config.log_file:
        setup_logging(config.debug, config.log_file)
    logger.debug(f"Loaded options: output={config.output} format={config.intent.value} "
                 f"username={config.username}")

    sys.exit(run(config))


if __name__ == "__main__":
    main()
