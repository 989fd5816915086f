"""Fixtures for API tests.

The app lifespan is not run; tests register their own database client
and replace external service clients with mocks.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from worship_chords.services.auth import AuthService
from worship_chords.services.lyrics_lookup import LyricsLookupClient
from worship_chords.services.r2 import R2Client
from worship_chords.services.separation import SeparationClient
from worship_chords.services.song_details import SongDetailsGenerator
from worship_chords.web.deps import (
    get_details_generator,
    get_lyrics_client,
    get_separation_client,
    get_storage,
    set_database,
)
from worship_chords.web.main import app


@pytest.fixture
def storage():
    """Mock object storage returning predictable URLs."""
    mock = MagicMock(spec=R2Client)
    mock.upload_bytes.side_effect = lambda data, key, content_type: f"https://media.test/{key}"
    return mock


@pytest.fixture
def separation():
    return MagicMock(spec=SeparationClient)


@pytest.fixture
def lyrics_client():
    return MagicMock(spec=LyricsLookupClient)


@pytest.fixture
def generator():
    return MagicMock(spec=SongDetailsGenerator)


@pytest.fixture
def client(db, storage, separation, lyrics_client, generator):
    """Test client bound to the temporary database."""
    set_database(db)
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_separation_client] = lambda: separation
    app.dependency_overrides[get_lyrics_client] = lambda: lyrics_client
    app.dependency_overrides[get_details_generator] = lambda: generator
    yield TestClient(app)
    app.dependency_overrides.clear()
    set_database(None)


@pytest.fixture
def sign_in(db):
    """Factory registering a user and returning (user, auth headers)."""
    auth = AuthService(db)
    counter = {"n": 0}

    def _sign_in(name="Worship Leader", is_admin=False):
        counter["n"] += 1
        email = f"leader{counter['n']}@example.com"
        auth.register(name, email, "password123", is_admin=is_admin)
        session, user = auth.login(email, "password123")
        return user, {"Authorization": f"Bearer {session.token}"}

    return _sign_in


@pytest.fixture
def owner(sign_in):
    return sign_in("Song Owner")


@pytest.fixture
def song_id(client, owner, sample_chart):
    """ID of a song in G owned by ``owner``."""
    _, headers = owner
    response = client.post(
        "/api/v1/songs",
        json={
            "title": "Amazing Grace",
            "writer": "John Newton",
            "original_key": "G",
            "sections": sample_chart,
            "lyrics_text": "[Verse 1]\nG       C\nAmazing grace",
            "video_id": "CDdvReNKKuk",
            "tags": ["hymn"],
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["song"]["id"]
