"""Test configuration and fixtures"""

import tempfile
from pathlib import Path

import pytest

from spotivy.core.models import FetchError, MediaMatch, Playlist, Track


class FakeCatalog:
    def __init__(self, playlists=None, tracks=None):
        self.playlists = playlists or []
        self.tracks = tracks or {}
        self.track_calls = []

    def list_playlists(self, username):
        return list(self.playlists)

    def list_tracks(self, owner_id, playlist_id):
        self.track_calls.append((owner_id, playlist_id))
        return list(self.tracks.get(playlist_id, []))


class FakeResolver:
    """Matches every query except those listed in `missing`."""

    def __init__(self, missing=()):
        self.missing = set(missing)
        self.video_queries = []
        self.audio_queries = []

    def _match(self, query):
        if query in self.missing:
            return None
        return MediaMatch(media_id=f"vid-{len(self.video_queries) + len(self.audio_queries)}", title=query)

    def find_video_match(self, query):
        self.video_queries.append(query)
        return self._match(query)

    def find_audio_match(self, query):
        self.audio_queries.append(query)
        return self._match(query)


class FakeFetcher:
    """Writes a small file, or raises FetchError for destinations named in `failing`."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def stream(self, match, intent, destination):
        self.calls.append((match, intent, destination))
        if destination.stem in self.failing:
            raise FetchError(f"stream broke for {destination.name}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"media")
        return destination


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def road_trip():
    return Playlist(id="pl1", owner_id="alice", name="Road Trip")


@pytest.fixture
def sample_tracks():
    return [
        Track(id="1", artist="Queen", name="Bohemian Rhapsody"),
        Track(id="2", artist="AC/DC", name="Highway to Hell"),
        Track(id="3", artist="Toto", name="Africa"),
    ]


@pytest.fixture
def fake_resolver():
    return FakeResolver()


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()
