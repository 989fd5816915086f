"""Tests for the lyric lookup client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from worship_chords.services.lyrics_lookup import (
    GENIUS_API_URL,
    NOT_FOUND_MESSAGE,
    LyricsLookupClient,
    LyricsLookupError,
)

GENIUS_SONG = {
    "id": 42,
    "title": "Oceans (Where Feet May Fail)",
    "primary_artist": {"name": "Hillsong UNITED"},
    "song_art_image_url": "https://images.genius.com/oceans.jpg",
    "url": "https://genius.com/oceans",
}


def make_response(status_code=200, json_data=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data or {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    return response


def fake_get(responses):
    """requests.get replacement answering by URL prefix."""

    def _get(url, **kwargs):
        for prefix, response in responses.items():
            if url.startswith(prefix):
                return response
        raise AssertionError(f"Unexpected URL {url}")

    return _get


@pytest.fixture
def client():
    return LyricsLookupClient(genius_token="token", lyrics_api_url="https://lyrics.test")


class TestLookup:
    """Tests for LyricsLookupClient.lookup."""

    def test_combines_genius_and_lyrics(self, client):
        responses = {
            f"{GENIUS_API_URL}/search": make_response(
                json_data={"response": {"hits": [{"result": {"id": 42}}]}}
            ),
            f"{GENIUS_API_URL}/songs/42": make_response(json_data={"response": {"song": GENIUS_SONG}}),
            "https://lyrics.test/v1/": make_response(json_data={"lyrics": "You call me out upon the waters"}),
        }
        with patch("worship_chords.services.lyrics_lookup.requests.get", side_effect=fake_get(responses)):
            result = client.lookup("Oceans", "Hillsong")

        data = result.to_dict()
        assert data["success"] is True
        assert data["title"] == "Oceans (Where Feet May Fail)"
        assert data["artist"] == "Hillsong UNITED"
        assert data["lyrics"].startswith("You call me out")
        assert data["message"] == "Lyrics fetched successfully!"

    def test_genius_only(self, client):
        responses = {
            f"{GENIUS_API_URL}/search": make_response(
                json_data={"response": {"hits": [{"result": {"id": 42}}]}}
            ),
            f"{GENIUS_API_URL}/songs/42": make_response(json_data={"response": {"song": GENIUS_SONG}}),
        }
        with patch("worship_chords.services.lyrics_lookup.requests.get", side_effect=fake_get(responses)):
            result = client.lookup("Oceans")

        assert result.lyrics is None
        assert result.lyrics_url == "https://genius.com/oceans"
        assert "Please visit the link" in result.message

    def test_lyrics_without_genius_token(self):
        client = LyricsLookupClient(lyrics_api_url="https://lyrics.test")
        responses = {"https://lyrics.test/v1/Chris%20Tomlin/": make_response(json_data={"lyrics": "Bless the Lord"})}
        with patch("worship_chords.services.lyrics_lookup.requests.get", side_effect=fake_get(responses)):
            result = client.lookup("10,000 Reasons", "Chris Tomlin")

        assert result.title == "10,000 Reasons"
        assert result.artist == "Chris Tomlin"
        assert result.lyrics == "Bless the Lord"

    def test_not_found(self, client):
        responses = {
            f"{GENIUS_API_URL}/search": make_response(json_data={"response": {"hits": []}}),
            "https://lyrics.test/v1/": make_response(status_code=404),
        }
        with patch("worship_chords.services.lyrics_lookup.requests.get", side_effect=fake_get(responses)):
            with pytest.raises(LyricsLookupError) as exc_info:
                client.lookup("Unknown Song", "Nobody")

        assert str(exc_info.value) == NOT_FOUND_MESSAGE
        assert exc_info.value.status_code == 404

    def test_service_errors_count_as_no_match(self, client):
        with patch(
            "worship_chords.services.lyrics_lookup.requests.get",
            side_effect=requests.exceptions.ConnectionError("down"),
        ):
            assert client.search_genius("Oceans") is None
            assert client.fetch_lyrics_text("Oceans", "Hillsong") is None
