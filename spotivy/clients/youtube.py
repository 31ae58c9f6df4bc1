"""
YouTube Data API v3 Client

Resolves a "<artist> - <title>" query to a single video, either as a music
video or as an audio upload. Search failures are logged and treated as no
match; only quota exhaustion is raised, since every later search would fail.
"""

import logging

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from spotivy.core.models import Intent, MediaMatch

logger = logging.getLogger(__name__)

MUSIC_CATEGORY_ID = "10"
MAX_RESULTS = 5


class YouTubeAuthError(Exception):
    """YouTube client could not be created."""
    pass


class YouTubeQuotaExceededError(Exception):
    """YouTube API quota exceeded."""
    pass


class YouTubeClient:
    """YouTube search client used as the media resolver."""

    def __init__(self, api_key: str, service=None):
        if service is not None:
            self._service = service
            return
        try:
            self._service = build("youtube", "v3", developerKey=api_key, cache_discovery=False)
            logger.info("YouTube client initialized")
        except Exception as e:
            raise YouTubeAuthError(f"Failed to create YouTube client: {e}")

    def _search(self, query: str) -> list[dict]:
        try:
            response = self._service.search().list(
                part="snippet",
                q=query,
                type="video",
                videoCategoryId=MUSIC_CATEGORY_ID,
                maxResults=MAX_RESULTS,
            ).execute()
        except HttpError as e:
            status = e.resp.status if e.resp else 0
            if status == 403 and "quotaExceeded" in str(e):
                raise YouTubeQuotaExceededError(f"Quota exceeded: {e}")
            logger.error(f"Search failed for '{query}': {e}")
            return []
        except Exception as e:
            logger.error(f"Search failed for '{query}': {e}")
            return []

        items = response.get("items", []) if isinstance(response, dict) else []
        return [i for i in items if isinstance(i, dict)]

    def _find(self, query: str, search_query: str, intent: Intent) -> MediaMatch | None:
        logger.debug(f"Searching: {search_query}")
        items = [i for i in self._search(search_query)
                 if isinstance(i.get("id"), dict) and i["id"].get("videoId")]

        if not items:
            logger.warning(f"No results for: {query}")
            return None

        best = self._find_best_match(items, query, intent)
        if best is None:
            logger.warning(f"No confident match for '{query}', using first result")
            best = items[0]
        return self._to_match(best)

    def find_video_match(self, query: str) -> MediaMatch | None:
        return self._find(query, query, Intent.VIDEO)

    def find_audio_match(self, query: str) -> MediaMatch | None:
        return self._find(query, f"{query} audio", Intent.AUDIO)

    def _to_match(self, item: dict) -> MediaMatch:
        snippet = item.get("snippet", {})
        return MediaMatch(
            media_id=item["id"]["videoId"],
            title=snippet.get("title", ""),
            channel=snippet.get("channelTitle", ""),
        )

    def _find_best_match(self, items: list, query: str, intent: Intent) -> dict | None:
        """
        Find the best matching video from search results.

        Scoring:
        - +10: Title covers the query words (required)
        - +5: Channel name covers the artist (likely official)
        - +3: Title contains "official", or channel is VEVO
        - +2: Title contains "video" (video) or "audio" (audio)
        - +1: Title contains "lyric" (audio)
        - -10: "cover", "karaoke", "instrumental"
        - -5/-3: "remix"/"live" unless the query has them
        """
        query_lower = query.lower()
        artist_lower = query_lower.split(" - ", 1)[0]
        words = query_lower.replace(" - ", " ").split()

        query_has_live = "live" in words
        query_has_remix = "remix" in words

        scored = []

        for rank, item in enumerate(items):
            snippet = item.get("snippet", {})
            title = snippet.get("title", "").lower()
            channel = snippet.get("channelTitle", "").lower()

            if not self._covers(title, words):
                continue
            score = 10

            if self._covers(channel, artist_lower.split()):
                score += 5
            if "official" in title:
                score += 3
            if "vevo" in channel:
                score += 3

            if intent is Intent.VIDEO and "video" in title:
                score += 2
            if intent is Intent.AUDIO:
                if "audio" in title:
                    score += 2
                if "lyric" in title:
                    score += 1

            if "cover" in title:
                score -= 10
            if "karaoke" in title or "instrumental" in title:
                score -= 10
            if "remix" in title and not query_has_remix:
                score -= 5
            if "live" in title and not query_has_live:
                score -= 3

            if score > 0:
                scored.append((score, -rank, item))

        if not scored:
            return None

        scored.sort(reverse=True, key=lambda x: (x[0], x[1]))
        best_score, _, best = scored[0]
        logger.debug(f"Best match (score={best_score}): {best.get('snippet', {}).get('title', '')}")
        return best

    def _covers(self, haystack: str, words: list[str]) -> bool:
        """Most of `words` appear in `haystack` ("The Weeknd" vs "Weeknd")."""
        if not words:
            return False
        if " ".join(words) in haystack:
            return True
        matches = sum(1 for word in words if word in haystack)
        return matches >= len(words) * 0.7
