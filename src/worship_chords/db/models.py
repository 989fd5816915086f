"""Data models for worship-chords database entities.

Provides dataclasses for users, songs, comments and sessions with
serialization to/from database rows.
"""

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from worship_chords.music.chart import ChordChart

DIFFICULTIES = ("beginner", "intermediate", "advanced")
TIME_SIGNATURES = ("2/4", "3/4", "4/4", "5/4", "6/8", "9/8", "12/8")

# Column order used by every songs SELECT
SONG_COLUMNS = (
    "id, title, artist, writer, original_key, current_key, sections, lyrics_text, "
    "image_url, video_id, spotify_id, vocals_url, instrumental_url, tempo, "
    "time_signature, capo, difficulty, created_by, view_count, created_at, updated_at"
)

USER_COLUMNS = "id, name, email, password_hash, is_admin, created_at, updated_at"


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


@dataclass
class User:
    """A registered account.

    Attributes:
        id: Unique user ID
        name: Display name
        email: Lowercased login email
        password_hash: werkzeug password hash
        is_admin: Whether the user may edit any song
    """

    id: str
    name: str
    email: str
    password_hash: str
    is_admin: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: tuple) -> "User":
        """Create a User from a row in USER_COLUMNS order."""
        return cls(
            id=row[0],
            name=row[1],
            email=row[2],
            password_hash=row[3],
            is_admin=bool(row[4]),
            created_at=row[5],
            updated_at=row[6],
        )

    def to_dict(self) -> dict[str, Any]:
        """Public representation (never includes the password hash)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "is_admin": self.is_admin,
        }

    @classmethod
    def generate_id(cls) -> str:
        return _new_id("user")


@dataclass
class Song:
    """A song with its chord chart and media links.

    Attributes:
        id: Unique song ID
        title: Song title
        writer: Songwriter credit
        original_key: Key the chords are written in
        artist: Performing artist
        current_key: Key the song is usually led in, if different
        sections: Structured chord chart as JSON text
        lyrics_text: Chord-over-lyrics text
        image_url: Cover image URL
        video_id: YouTube video ID
        spotify_id: Spotify track ID
        vocals_url: Isolated vocals stem URL
        instrumental_url: Instrumental stem URL
        tags: Free-form tags
        tempo: Beats per minute
        time_signature: Time signature (e.g., "4/4")
        capo: Capo fret
        difficulty: beginner, intermediate or advanced
        created_by: ID of the user who submitted the song
        view_count: Number of detail views
        average_rating: Mean rating, rounded to 1 decimal (query-time)
        rating_count: Number of ratings (query-time)
    """

    id: str
    title: str
    writer: str
    original_key: str
    artist: Optional[str] = None
    current_key: Optional[str] = None
    sections: Optional[str] = None
    lyrics_text: Optional[str] = None
    image_url: Optional[str] = None
    video_id: Optional[str] = None
    spotify_id: Optional[str] = None
    vocals_url: Optional[str] = None
    instrumental_url: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    tempo: Optional[int] = None
    time_signature: str = "4/4"
    capo: int = 0
    difficulty: str = "intermediate"
    created_by: Optional[str] = None
    view_count: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    average_rating: float = 0.0
    rating_count: int = 0

    @classmethod
    def from_row(cls, row: tuple, tags: Optional[list[str]] = None) -> "Song":
        """Create a Song from a row in SONG_COLUMNS order.

        Args:
            row: Database row; may carry average_rating and rating_count
                as two extra trailing columns
            tags: Tags loaded from song_tags

        Returns:
            Song instance
        """
        song = cls(
            id=row[0],
            title=row[1],
            artist=row[2],
            writer=row[3],
            original_key=row[4],
            current_key=row[5],
            sections=row[6],
            lyrics_text=row[7],
            image_url=row[8],
            video_id=row[9],
            spotify_id=row[10],
            vocals_url=row[11],
            instrumental_url=row[12],
            tempo=row[13],
            time_signature=row[14] or "4/4",
            capo=row[15] or 0,
            difficulty=row[16] or "intermediate",
            created_by=row[17],
            view_count=row[18] or 0,
            created_at=row[19],
            updated_at=row[20],
            tags=list(tags or []),
        )
        if len(row) > 22:
            song.average_rating = round(float(row[21] or 0.0), 1)
            song.rating_count = int(row[22] or 0)
        return song

    @property
    def chart(self) -> Optional[ChordChart]:
        """Parsed structured chart, if the song has one."""
        if not self.sections:
            return None
        return ChordChart.from_dict(json.loads(self.sections))

    def to_dict(self) -> dict[str, Any]:
        """Convert Song to dictionary.

        Returns:
            Dictionary representation with ``sections`` decoded
        """
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "writer": self.writer,
            "original_key": self.original_key,
            "current_key": self.current_key,
            "sections": json.loads(self.sections) if self.sections else None,
            "lyrics_text": self.lyrics_text,
            "image_url": self.image_url,
            "video_id": self.video_id,
            "spotify_id": self.spotify_id,
            "vocals_url": self.vocals_url,
            "instrumental_url": self.instrumental_url,
            "tags": self.tags,
            "tempo": self.tempo,
            "time_signature": self.time_signature,
            "capo": self.capo,
            "difficulty": self.difficulty,
            "created_by": self.created_by,
            "view_count": self.view_count,
            "average_rating": self.average_rating,
            "rating_count": self.rating_count,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def generate_id(cls) -> str:
        return _new_id("song")


@dataclass
class Comment:
    """A comment left on a song."""

    id: str
    song_id: str
    user_id: str
    user_name: str
    text: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: tuple) -> "Comment":
        return cls(
            id=row[0],
            song_id=row[1],
            user_id=row[2],
            user_name=row[3],
            text=row[4],
            created_at=row[5],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "song_id": self.song_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "text": self.text,
            "created_at": self.created_at,
        }

    @classmethod
    def generate_id(cls) -> str:
        return _new_id("comment")


@dataclass
class AuthSession:
    """A bearer token issued at sign-in."""

    token: str
    user_id: str
    expires_at: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: tuple) -> "AuthSession":
        return cls(token=row[0], user_id=row[1], created_at=row[2], expires_at=row[3])


@dataclass
class Pagination:
    """Page information for list results."""

    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "page": self.page, "limit": self.limit, "pages": self.pages}


@dataclass
class DatabaseStats:
    """Database statistics and health information.

    Attributes:
        table_counts: Row count per table
        integrity_ok: Whether PRAGMA integrity_check passed
        foreign_keys_enabled: Whether foreign key enforcement is on
    """

    table_counts: dict[str, int] = field(default_factory=dict)
    integrity_ok: bool = True
    foreign_keys_enabled: bool = True

    @property
    def total_songs(self) -> int:
        return self.table_counts.get("songs", 0)

    @property
    def total_users(self) -> int:
        return self.table_counts.get("users", 0)
