"""Spotify Web API Client - client credentials flow, read-only catalog access"""

import logging
import time
from typing import Any
from urllib.parse import quote

import requests

from spotivy.core.models import CatalogError, Playlist, Track

logger = logging.getLogger(__name__)

TOKEN_URL = "https://accounts.spotify.com/api/token"
API_URL = "https://api.spotify.com/v1"
PLAYLIST_PAGE_SIZE = 50
TRACK_PAGE_SIZE = 100
REQUEST_TIMEOUT = 30


class SpotifyAuthError(CatalogError):
    pass


class SpotifySchemaError(CatalogError):
    pass


class SpotifyClient:
    def __init__(self, client_id: str, client_secret: str,
                 session: requests.Session | None = None):
        self._client_id = client_id
        self._client_secret = client_secret
        self._token: str | None = None
        self._token_expires: float = 0
        self._session = session or requests.Session()
        logger.info("Spotify client initialized")

    def _refresh_token(self) -> None:
        logger.debug("Requesting Spotify access token")
        try:
            response = self._session.post(
                TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(self._client_id, self._client_secret),
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise SpotifyAuthError(f"Token request failed: {e}") from e

        if response.status_code != 200:
            raise SpotifyAuthError(
                f"Token request rejected ({response.status_code}): {response.text[:200]}"
            )

        data = response.json()
        if "access_token" not in data:
            raise SpotifyAuthError("Token response missing 'access_token'")
        self._token = data["access_token"]
        self._token_expires = time.time() + data.get("expires_in", 3600)
        logger.debug("Spotify token obtained")

    def _ensure_token(self) -> None:
        # Refresh 5 minutes early
        if self._token is None or time.time() >= self._token_expires - 300:
            self._refresh_token()

    def _get(self, url: str, params: dict | None = None) -> dict:
        self._ensure_token()
        try:
            response = self._session.get(
                url,
                headers={"Authorization": f"Bearer {self._token}"},
                params=params,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise CatalogError(f"Request to {url} failed: {e}") from e

        if response.status_code == 401:
            raise SpotifyAuthError(f"Unauthorized: {response.text[:200]}")
        if response.status_code != 200:
            logger.error(f"Spotify error {response.status_code}: {response.text[:200]}")
            raise CatalogError(f"Spotify returned {response.status_code} for {url}")

        try:
            return response.json()
        except ValueError as e:
            raise SpotifySchemaError(f"Response from {url} is not JSON: {e}") from e

    def _validate_page(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise SpotifySchemaError("Response is not an object")
        if "items" not in data:
            raise SpotifySchemaError("Response missing 'items'")
        if "total" not in data:
            raise SpotifySchemaError("Response missing 'total'")

    def _paginate(self, url: str, limit: int) -> list[dict]:
        items = []
        offset = 0

        while True:
            page = self._get(url, params={"offset": offset, "limit": limit})
            self._validate_page(page)

            batch = page["items"] or []
            items.extend(batch)

            offset += limit
            if not batch or offset >= page["total"]:
                break

        return items

    def list_playlists(self, username: str) -> list[Playlist]:
        items = self._paginate(f"{API_URL}/users/{quote(username, safe='')}/playlists", PLAYLIST_PAGE_SIZE)

        playlists = []
        for item in items:
            playlist = self._extract_playlist(item)
            if playlist:
                playlists.append(playlist)

        logger.info(f"Retrieved {len(playlists)} playlists for {username}")
        return playlists

    def list_tracks(self, owner_id: str, playlist_id: str) -> list[Track]:
        logger.debug(f"Listing tracks of playlist {playlist_id} owned by {owner_id}")
        items = self._paginate(f"{API_URL}/playlists/{playlist_id}/tracks", TRACK_PAGE_SIZE)

        tracks = []
        for item in items:
            track = self._extract_track(item)
            if track:
                tracks.append(track)

        logger.info(f"Retrieved {len(tracks)} tracks from Spotify")
        return tracks

    def _extract_playlist(self, item: dict | None) -> Playlist | None:
        if not item or not item.get("id"):
            return None
        owner = item.get("owner") or {}
        return Playlist(id=item["id"], owner_id=owner.get("id", ""), name=item.get("name", ""))

    def _extract_track(self, item: dict | None) -> Track | None:
        track_data = (item or {}).get("track")
        # Local files and removed episodes come back without an id
        if not track_data or not track_data.get("id"):
            logger.debug("Skipping playlist item without a track id")
            return None

        artists = track_data.get("artists") or []
        artist = artists[0].get("name", "") if artists else ""
        return Track(id=track_data["id"], artist=artist, name=track_data.get("name", ""))
