"""
Sync Engine

Mirrors a user's Spotify playlists into local media files.

Flow per run:
1. List the user's playlists (catalog order)
2. For each playlist, load its ledger and list its tracks
3. Drop tracks already in the ledger
4. For each remaining track, in order:
   - resolve a YouTube match for "<artist> - <title>"
   - stream it to <output>/<playlist>/<artist - title>.<mp4|mp3>
   - record the track in the ledger and save it immediately

A track that cannot be matched or fetched is logged and skipped. It stays out
of the ledger so the next run tries it again. Catalog and ledger failures
abort the run.
"""

import logging
import time
from pathlib import Path
from typing import Protocol

from spotivy.core.ledger import Ledger, LedgerStore
from spotivy.core.models import (
    FetchError,
    Intent,
    MediaMatch,
    NoMatchError,
    Playlist,
    PlaylistResult,
    SyncOptions,
    SyncResult,
    Track,
    TrackOutcome,
    TrackState,
)
from spotivy.core.naming import sanitize

logger = logging.getLogger(__name__)


class CatalogProtocol(Protocol):
    def list_playlists(self, username: str) -> list[Playlist]: ...
    def list_tracks(self, owner_id: str, playlist_id: str) -> list[Track]: ...


class ResolverProtocol(Protocol):
    def find_video_match(self, query: str) -> MediaMatch | None: ...
    def find_audio_match(self, query: str) -> MediaMatch | None: ...


class FetcherProtocol(Protocol):
    def stream(self, match: MediaMatch, intent: Intent, destination: Path) -> Path: ...


def outstanding_tracks(tracks: list[Track], ledger: Ledger) -> list[Track]:
    """Tracks not yet in the ledger, in catalog order, each id once."""
    seen = set()
    pending = []
    for track in tracks:
        if track.id in ledger or track.id in seen:
            continue
        seen.add(track.id)
        pending.append(track)
    return pending


class SyncEngine:
    """Downloads every playlist of a user, one track at a time."""

    def __init__(self, catalog: CatalogProtocol, resolver: ResolverProtocol,
                 fetcher: FetcherProtocol, store_factory=LedgerStore):
        self._catalog = catalog
        self._resolver = resolver
        self._fetcher = fetcher
        self._store_factory = store_factory

    def _resolve(self, query: str, intent: Intent) -> MediaMatch:
        if intent is Intent.VIDEO:
            match = self._resolver.find_video_match(query)
        else:
            match = self._resolver.find_audio_match(query)
        if match is None:
            raise NoMatchError(f"No {intent.value} found for '{query}'")
        return match

    def sync_track(self, track: Track, intent: Intent, output_dir: Path,
                   ledger: Ledger, store: LedgerStore, playlist_dir: str) -> TrackOutcome:
        """
        Resolve, fetch and record one track.

        NoMatchError and FetchError end in a skipped outcome. Ledger write
        failures propagate.
        """
        outcome = TrackOutcome(track)
        label = track.label
        logger.info(f"   [Downloading track] {label}")

        try:
            outcome.state = TrackState.RESOLVING
            match = self._resolve(label, intent)

            outcome.state = TrackState.FETCHING
            destination = output_dir / f"{sanitize(label)}.{intent.extension}"
            logger.debug(f"Downloading {intent.value} from url: {match.url}")
            outcome.path = self._fetcher.stream(match, intent, destination)
        except NoMatchError as e:
            outcome.state = TrackState.SKIPPED_NO_MATCH
            outcome.error = str(e)
            logger.error(f"     [Download failed] {e}")
            return outcome
        except FetchError as e:
            outcome.state = TrackState.SKIPPED_FETCH_FAILED
            outcome.error = str(e)
            logger.error(f"     [Download failed] {e}")
            return outcome

        ledger.add(track.id, label)
        store.save(ledger, playlist_dir)
        outcome.state = TrackState.RECORDED
        return outcome

    def sync_playlist(self, playlist: Playlist, options: SyncOptions) -> PlaylistResult:
        """Download the tracks of one playlist that are not in its ledger yet."""
        logger.info(f"[Downloading playlist] {playlist.name}")

        playlist_dir = sanitize(playlist.name)
        saving_path = Path(options.output_root) / playlist_dir
        store = self._store_factory(options.output_root)
        ledger = store.load(playlist_dir)

        tracks = self._catalog.list_tracks(playlist.owner_id, playlist.id)
        pending = outstanding_tracks(tracks, ledger)
        result = PlaylistResult(playlist, total=len(tracks),
                                already_completed=len(tracks) - len(pending))
        logger.debug(f"{len(pending)} tracks will be downloaded")

        for track in pending:
            result.outcomes.append(
                self.sync_track(track, options.intent, saving_path, ledger, store, playlist_dir)
            )

        logger.info(f"Playlist '{playlist.name}': +{result.downloaded} "
                    f"skipped {result.skipped}, {result.already_completed} already downloaded")
        return result

    def run(self, username: str, options: SyncOptions) -> SyncResult:
        """Sync all playlists of `username`. Fatal errors propagate."""
        start = time.time()

        logger.info("=" * 50)
        playlists = self._catalog.list_playlists(username)
        logger.info(f"Found {len(playlists)} playlists for {username}")

        result = SyncResult()
        for playlist in playlists:
            playlist_result = self.sync_playlist(playlist, options)
            result.playlists.append(playlist_result)
            result.errors.extend(playlist_result.errors)

        result.duration = time.time() - start
        logger.info(f"Completed in {result.duration:.1f}s: "
                    f"+{result.tracks_downloaded} skipped {result.tracks_skipped}")
        logger.info("=" * 50)
        return result
