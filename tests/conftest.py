"""Shared fixtures for worship-chords tests."""

import json

import pytest

from worship_chords.db.client import DatabaseClient
from worship_chords.db.models import Song, User


@pytest.fixture
def tmp_db_path(tmp_path):
    """Temporary SQLite database path."""
    return tmp_path / "test.db"


@pytest.fixture
def db(tmp_db_path):
    """Initialized database client, closed after the test."""
    client = DatabaseClient(tmp_db_path)
    client.initialize_schema()
    yield client
    client.close()


@pytest.fixture
def sample_chart():
    """A two-section chart in G."""
    return {
        "sections": [
            {
                "name": "Verse 1",
                "lines": [
                    {
                        "lyrics": "Amazing grace how sweet the sound",
                        "chords": [
                            {"chord": "G", "position": 0},
                            {"chord": "G7", "position": 8},
                            {"chord": "C", "position": 19},
                            {"chord": "G", "position": 29},
                        ],
                    },
                    {
                        "lyrics": "That saved a wretch like me",
                        "chords": [
                            {"chord": "Em", "position": 0},
                            {"chord": "D/F#", "position": 11},
                            {"chord": "D", "position": 22},
                        ],
                    },
                ],
            },
            {
                "name": "Chorus",
                "lines": [
                    {
                        "lyrics": "My chains are gone",
                        "chords": [
                            {"chord": "Am7", "position": 3},
                            {"chord": "Dsus4", "position": 13},
                        ],
                    },
                ],
            },
        ]
    }


@pytest.fixture
def make_user(db):
    """Factory inserting a user."""
    counter = {"n": 0}

    def _make(name="Test User", email=None, is_admin=False):
        counter["n"] += 1
        user = User(
            id=User.generate_id(),
            name=name,
            email=email or f"user{counter['n']}@example.com",
            password_hash="hash",
            is_admin=is_admin,
        )
        return db.create_user(user)

    return _make


@pytest.fixture
def make_song(db, sample_chart):
    """Factory inserting a song."""

    def _make(title="Amazing Grace", created_by=None, **fields):
        song = Song(
            id=Song.generate_id(),
            title=title,
            writer=fields.pop("writer", "John Newton"),
            original_key=fields.pop("original_key", "G"),
            sections=fields.pop("sections", json.dumps(sample_chart)),
            created_by=created_by,
            **fields,
        )
        return db.insert_song(song)

    return _make
