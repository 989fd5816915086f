"""Lyric lookup for new songs.

Genius is searched first for the canonical title, artist and artwork;
lyrics.ovh then supplies the lyric text itself.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from worship_chords.errors import ServiceError
from worship_chords.logging_config import get_logger

logger = get_logger(__name__)

GENIUS_API_URL = "https://api.genius.com"
NOT_FOUND_MESSAGE = "Song not found. Please enter lyrics manually."


class LyricsLookupError(ServiceError):
    """Lyrics could not be found or the lookup services failed."""


@dataclass
class LyricsResult:
    """Combined lookup result.

    Attributes:
        title: Canonical title (the query title if Genius had no match)
        artist: Canonical artist
        lyrics: Lyric text, if lyrics.ovh had it
        image_url: Song artwork from Genius
        lyrics_url: Genius song page
    """

    title: str
    artist: Optional[str] = None
    lyrics: Optional[str] = None
    image_url: Optional[str] = None
    lyrics_url: Optional[str] = None

    @property
    def message(self) -> str:
        if self.lyrics:
            return "Lyrics fetched successfully!"
        return "Song found on Genius. Please visit the link or add lyrics manually."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "title": self.title,
            "artist": self.artist,
            "image_url": self.image_url,
            "lyrics_url": self.lyrics_url,
            "lyrics": self.lyrics,
            "message": self.message,
        }


class LyricsLookupClient:
    """HTTP client for Genius and lyrics.ovh.

    Attributes:
        genius_token: Genius API access token; Genius is skipped without one
        lyrics_api_url: lyrics.ovh base URL
        timeout: Request timeout in seconds
    """

    def __init__(self, genius_token: str = "", lyrics_api_url: str = "https://api.lyrics.ovh", timeout: int = 15):
        self.genius_token = genius_token
        self.lyrics_api_url = lyrics_api_url.rstrip("/")
        self.timeout = timeout

    def _genius_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.genius_token}"}

    def search_genius(self, title: str, artist: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Find the best Genius match for a song.

        Lookup failures are logged and treated as "no match".

        Returns:
            Genius song object, or None
        """
        if not self.genius_token:
            return None

        query = f"{title} {artist}" if artist else title
        try:
            response = requests.get(
                f"{GENIUS_API_URL}/search",
                params={"q": query},
                headers=self._genius_headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            hits = response.json().get("response", {}).get("hits", [])
            if not hits:
                return None

            song_id = hits[0]["result"]["id"]
            response = requests.get(
                f"{GENIUS_API_URL}/songs/{song_id}",
                headers=self._genius_headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json().get("response", {}).get("song")
        except (requests.exceptions.RequestException, KeyError, ValueError) as e:
            logger.warning(f"Genius lookup failed for {query!r}: {e}")
            return None

    def fetch_lyrics_text(self, title: str, artist: str) -> Optional[str]:
        """Get lyric text from lyrics.ovh, or None if it has none."""
        url = f"{self.lyrics_api_url}/v1/{quote(artist, safe='')}/{quote(title, safe='')}"
        try:
            response = requests.get(url, timeout=self.timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json().get("lyrics") or None
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"lyrics.ovh lookup failed for {artist!r} / {title!r}: {e}")
            return None

    def lookup(self, title: str, artist: Optional[str] = None) -> LyricsResult:
        """Look a song up on both services.

        Args:
            title: Song title
            artist: Artist, needed for the lyric text lookup

        Returns:
            Combined LyricsResult

        Raises:
            LyricsLookupError: If neither service knows the song
        """
        genius = self.search_genius(title, artist)
        lyrics = self.fetch_lyrics_text(title, artist) if artist else None

        if not genius and not lyrics:
            raise LyricsLookupError(NOT_FOUND_MESSAGE, status_code=404)

        genius = genius or {}
        return LyricsResult(
            title=genius.get("title") or title,
            artist=(genius.get("primary_artist") or {}).get("name") or artist,
            lyrics=lyrics,
            image_url=genius.get("song_art_image_url"),
            lyrics_url=genius.get("url"),
        )
