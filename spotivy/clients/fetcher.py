"""Media fetcher - streams a resolved YouTube video to a local file with yt-dlp"""

import logging
from pathlib import Path

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from spotivy.core.models import FetchError, Intent, MediaMatch

logger = logging.getLogger(__name__)

# itag 18 is the 360p muxed mp4
VIDEO_FORMAT = "18/best[ext=mp4]"
# audio/mp4 stream only, saved as is under the .mp3 name
AUDIO_FORMAT = "bestaudio[ext=m4a]"
SOCKET_TIMEOUT = 30


class _YtDlpLogger:
    """Routes yt-dlp output into logging."""

    def debug(self, msg: str) -> None:
        logger.debug(msg)

    def info(self, msg: str) -> None:
        logger.debug(msg)

    def warning(self, msg: str) -> None:
        logger.debug(msg)

    def error(self, msg: str) -> None:
        logger.debug(msg)


def build_options(intent: Intent, destination: Path) -> dict:
    return {
        "format": VIDEO_FORMAT if intent is Intent.VIDEO else AUDIO_FORMAT,
        # outtmpl is a template, literal % must be doubled
        "outtmpl": str(destination).replace("%", "%%"),
        "noplaylist": True,
        "nopart": True,
        "continuedl": False,
        "overwrites": True,
        "retries": 0,
        "fragment_retries": 0,
        "socket_timeout": SOCKET_TIMEOUT,
        "cachedir": False,
        "quiet": True,
        "no_warnings": True,
        "noprogress": True,
        "logger": _YtDlpLogger(),
    }


class MediaFetcher:
    def __init__(self, downloader_factory=YoutubeDL):
        self._downloader_factory = downloader_factory

    def stream(self, match: MediaMatch, intent: Intent, destination: Path) -> Path:
        """Download `match` to `destination`. Raises FetchError on any failure."""
        destination = Path(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with self._downloader_factory(build_options(intent, destination)) as ydl:
                ydl.download([match.url])
        except (DownloadError, OSError) as e:
            self._discard(destination)
            raise FetchError(f"Download of {match.url} failed: {e}") from e

        if not destination.exists() or destination.stat().st_size == 0:
            self._discard(destination)
            raise FetchError(f"Download of {match.url} produced no data")

        logger.debug(f"Saved {destination}")
        return destination

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove partial file {path}: {e}")
