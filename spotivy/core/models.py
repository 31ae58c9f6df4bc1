"""Data models and error types for sync operations."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class SpotivyError(Exception):
    """Base error type."""
    pass


class ConfigError(SpotivyError):
    """Configuration is missing or invalid."""
    pass


class CatalogError(SpotivyError):
    """Playlist or track enumeration failed. Fatal to the run."""
    pass


class LedgerError(SpotivyError):
    pass


class LedgerCorruptError(LedgerError):
    """Ledger file exists but is not a well-formed document."""
    pass


class LedgerWriteError(LedgerError):
    """Ledger file could not be written."""
    pass


class NoMatchError(SpotivyError):
    """No acceptable media found for a track. Local to the track."""
    pass


class FetchError(SpotivyError):
    """Streaming or saving a matched media failed. Local to the track."""
    pass


class Intent(str, Enum):
    """What to download for every track of a run."""
    VIDEO = "video"
    AUDIO = "audio"

    @property
    def extension(self) -> str:
        return "mp4" if self is Intent.VIDEO else "mp3"


class TrackState(str, Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    FETCHING = "fetching"
    RECORDED = "recorded"
    SKIPPED_NO_MATCH = "skipped-no-match"
    SKIPPED_FETCH_FAILED = "skipped-fetch-failed"


@dataclass(frozen=True)
class Playlist:
    """A playlist from Spotify."""
    id: str
    owner_id: str
    name: str


@dataclass(frozen=True)
class Track:
    """A track from Spotify."""
    id: str
    artist: str
    name: str

    @property
    def label(self) -> str:
        return f"{self.artist} - {self.name}"


@dataclass(frozen=True)
class MediaMatch:
    """A YouTube video resolved for a search query."""
    media_id: str
    title: str = ""
    channel: str = ""

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.media_id}"


@dataclass
class SyncOptions:
    """Per-run settings threaded into the sync engine."""
    output_root: Path
    intent: Intent = Intent.VIDEO


@dataclass
class TrackOutcome:
    """Result of syncing a single track."""
    track: Track
    state: TrackState = TrackState.PENDING
    path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def recorded(self) -> bool:
        return self.state is TrackState.RECORDED

    @property
    def skipped(self) -> bool:
        return self.state in (TrackState.SKIPPED_NO_MATCH, TrackState.SKIPPED_FETCH_FAILED)


@dataclass
class PlaylistResult:
    """Result of syncing one playlist."""
    playlist: Playlist
    total: int = 0
    already_completed: int = 0
    outcomes: List[TrackOutcome] = field(default_factory=list)

    @property
    def downloaded(self) -> int:
        return sum(1 for o in self.outcomes if o.recorded)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def errors(self) -> List[str]:
        return [f"{o.track.label}: {o.error}" for o in self.outcomes if o.skipped]


@dataclass
class SyncResult:
    """Result of a full run over a user's playlists."""
    playlists: List[PlaylistResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def tracks_downloaded(self) -> int:
        return sum(p.downloaded for p in self.playlists)

    @property
    def tracks_skipped(self) -> int:
        return sum(p.skipped for p in self.playlists)
