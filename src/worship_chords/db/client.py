"""Database client for worship-chords.

Provides SQLite operations for accounts, sign-in sessions, the song
catalog and per-user ratings, favorites and comments.
"""

import secrets
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator, Optional

from worship_chords.db.models import (
    SONG_COLUMNS,
    USER_COLUMNS,
    AuthSession,
    Comment,
    DatabaseStats,
    Pagination,
    Song,
    User,
)
from worship_chords.db.schema import (
    ALL_SCHEMA_STATEMENTS,
    FOREIGN_KEYS_QUERY,
    INTEGRITY_CHECK_QUERY,
    ROW_COUNT_QUERY,
)
from worship_chords.db.search import SongQuery
from worship_chords.logging_config import get_logger

logger = get_logger(__name__)

_PREFIXED_SONG_COLUMNS = ", ".join(f"s.{c.strip()}" for c in SONG_COLUMNS.split(","))

# Songs joined with their rating aggregate; callers append WHERE/ORDER BY
_SONG_SELECT = f"""
SELECT {_PREFIXED_SONG_COLUMNS},
       COALESCE(AVG(r.rating), 0) AS average_rating,
       COUNT(r.rating) AS rating_count
FROM songs s
LEFT JOIN ratings r ON r.song_id = s.id
"""


class DuplicateEmailError(Exception):
    """A user with this email already exists."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DatabaseClient:
    """Client for local SQLite database operations.

    Attributes:
        db_path: Path to the SQLite database file
    """

    def __init__(self, db_path: Path):
        """Initialize the database client.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self._connection: Optional[sqlite3.Connection] = None
        # One connection is shared by the web threadpool; every use holds this lock
        self._lock = threading.RLock()

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None

    def __enter__(self) -> "DatabaseClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database transactions.

        Yields:
            SQLite connection with active transaction
        """
        with self._lock:
            conn = self.connection
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _fetchone(self, sql: str, params=()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self.connection.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params=()) -> list:
        with self._lock:
            return self.connection.execute(sql, params).fetchall()

    def ping(self) -> None:
        """Run a trivial query; raises sqlite3.Error if the database is unusable."""
        self._fetchone("SELECT 1")

    def initialize_schema(self) -> None:
        """Create all tables and indexes if they don't exist."""
        with self.transaction() as conn:
            cursor = conn.cursor()
            for statement in ALL_SCHEMA_STATEMENTS:
                cursor.execute(statement)

    def get_stats(self) -> DatabaseStats:
        """Get database statistics."""
        table_counts = {row[0]: row[1] for row in self._fetchall(ROW_COUNT_QUERY)}
        integrity_result = self._fetchone(INTEGRITY_CHECK_QUERY)
        fk_result = self._fetchone(FOREIGN_KEYS_QUERY)

        return DatabaseStats(
            table_counts=table_counts,
            integrity_ok=bool(integrity_result) and integrity_result[0] == "ok",
            foreign_keys_enabled=bool(fk_result[0]) if fk_result else False,
        )

    # User operations

    def create_user(self, user: User) -> User:
        """Insert a new user.

        Args:
            user: User to insert; the email is stored lowercased

        Returns:
            The stored user

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        user.email = user.email.strip().lower()
        try:
            with self.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO users (id, name, email, password_hash, is_admin)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user.id, user.name, user.email, user.password_hash, int(user.is_admin)),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateEmailError(user.email) from e
        logger.info(f"Created user {user.id} <{user.email}>")
        return self.get_user(user.id)

    def get_user(self, user_id: str) -> Optional[User]:
        row = self._fetchone(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
        )
        return User.from_row(tuple(row)) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        row = self._fetchone(
            f"SELECT {USER_COLUMNS} FROM users WHERE email = ?", (email.strip().lower(),)
        )
        return User.from_row(tuple(row)) if row else None

    # Session operations

    def create_session(self, user_id: str, ttl_hours: int) -> AuthSession:
        """Issue a new bearer token for a user.

        Args:
            user_id: User signing in
            ttl_hours: Token lifetime in hours

        Returns:
            The new session
        """
        session = AuthSession(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            expires_at=(_utcnow() + timedelta(hours=ttl_hours)).isoformat(),
        )
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO auth_sessions (token, user_id, expires_at) VALUES (?, ?, ?)",
                (session.token, session.user_id, session.expires_at),
            )
        return session

    def get_session_user(self, token: str) -> Optional[User]:
        """Resolve a bearer token to its user.

        Returns:
            The user, or None if the token is unknown or expired
        """
        row = self._fetchone(
            "SELECT token, user_id, created_at, expires_at FROM auth_sessions WHERE token = ?",
            (token,),
        )
        if not row:
            return None
        session = AuthSession.from_row(tuple(row))
        if datetime.fromisoformat(session.expires_at) <= _utcnow():
            self.delete_session(token)
            return None
        return self.get_user(session.user_id)

    def delete_session(self, token: str) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM auth_sessions WHERE token = ?", (token,))

    def purge_expired_sessions(self) -> int:
        """Delete expired sessions.

        Returns:
            Number of sessions removed
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM auth_sessions WHERE expires_at <= ?", (_utcnow().isoformat(),)
            )
            return cursor.rowcount

    # Song operations

    def _load_tags(self, song_ids: list[str]) -> dict[str, list[str]]:
        if not song_ids:
            return {}
        placeholders = ", ".join("?" for _ in song_ids)
        rows = self._fetchall(
            f"SELECT song_id, tag FROM song_tags WHERE song_id IN ({placeholders}) "
            "ORDER BY song_id, position",
            song_ids,
        )
        tags: dict[str, list[str]] = {}
        for row in rows:
            tags.setdefault(row[0], []).append(row[1])
        return tags

    def _songs_from_rows(self, rows: list) -> list[Song]:
        tags = self._load_tags([row[0] for row in rows])
        return [Song.from_row(tuple(row), tags.get(row[0], [])) for row in rows]

    @staticmethod
    def _write_tags(conn: sqlite3.Connection, song: Song) -> None:
        conn.execute("DELETE FROM song_tags WHERE song_id = ?", (song.id,))
        seen = set()
        for position, tag in enumerate(song.tags):
            if tag in seen:
                continue
            seen.add(tag)
            conn.execute(
                "INSERT INTO song_tags (song_id, tag, position) VALUES (?, ?, ?)",
                (song.id, tag, position),
            )

    def insert_song(self, song: Song) -> Song:
        """Insert a song and its tags.

        Args:
            song: Song to insert

        Returns:
            The stored song
        """
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO songs (
                    id, title, artist, writer, original_key, current_key,
                    sections, lyrics_text, image_url, video_id, spotify_id,
                    vocals_url, instrumental_url, tempo, time_signature, capo,
                    difficulty, created_by
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    song.id,
                    song.title,
                    song.artist,
                    song.writer,
                    song.original_key,
                    song.current_key,
                    song.sections,
                    song.lyrics_text,
                    song.image_url,
                    song.video_id,
                    song.spotify_id,
                    song.vocals_url,
                    song.instrumental_url,
                    song.tempo,
                    song.time_signature,
                    song.capo,
                    song.difficulty,
                    song.created_by,
                ),
            )
            self._write_tags(conn, song)
        logger.info(f"Inserted song {song.id}: {song.title}")
        return self.get_song(song.id)

    def update_song(self, song: Song) -> Optional[Song]:
        """Write every editable field of a song back.

        Returns:
            The updated song, or None if it does not exist
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE songs SET
                    title = ?, artist = ?, writer = ?, original_key = ?,
                    current_key = ?, sections = ?, lyrics_text = ?, image_url = ?,
                    video_id = ?, spotify_id = ?, vocals_url = ?,
                    instrumental_url = ?, tempo = ?, time_signature = ?, capo = ?,
                    difficulty = ?, updated_at = datetime('now')
                WHERE id = ?
                """,
                (
                    song.title,
                    song.artist,
                    song.writer,
                    song.original_key,
                    song.current_key,
                    song.sections,
                    song.lyrics_text,
                    song.image_url,
                    song.video_id,
                    song.spotify_id,
                    song.vocals_url,
                    song.instrumental_url,
                    song.tempo,
                    song.time_signature,
                    song.capo,
                    song.difficulty,
                    song.id,
                ),
            )
            if cursor.rowcount == 0:
                return None
            self._write_tags(conn, song)
        return self.get_song(song.id)

    def delete_song(self, song_id: str) -> bool:
        """Delete a song with its tags, ratings, favorites and comments.

        Returns:
            True if a song was deleted
        """
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM songs WHERE id = ?", (song_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted song {song_id}")
        return deleted

    def get_song(self, song_id: str) -> Optional[Song]:
        """Get a song by ID, with tags and rating summary."""
        row = self._fetchone(
            f"{_SONG_SELECT} WHERE s.id = ? GROUP BY s.id", (song_id,)
        )
        if not row:
            return None
        return self._songs_from_rows([row])[0]

    def list_songs(self, query: Optional[SongQuery] = None) -> tuple[list[Song], Pagination]:
        """List songs matching a query, one page at a time.

        Args:
            query: Search, filter, sort and paging parameters

        Returns:
            Tuple of (songs on the requested page, pagination info)
        """
        query = query or SongQuery()
        where, params = query.where_clause()

        total = self._fetchone(
            f"SELECT COUNT(*) FROM songs s {where}", params
        )[0]

        rows = self._fetchall(
            f"{_SONG_SELECT} {where} GROUP BY s.id {query.order_by()} LIMIT ? OFFSET ?",
            [*params, query.limit, query.offset],
        )

        return self._songs_from_rows(rows), Pagination(total=total, page=query.page, limit=query.limit)

    def list_popular(self, limit: int = 10) -> list[Song]:
        """Most viewed songs, ties broken by rating."""
        rows = self._fetchall(
            f"{_SONG_SELECT} GROUP BY s.id "
            "ORDER BY s.view_count DESC, average_rating DESC, s.id LIMIT ?",
            (limit,),
        )
        return self._songs_from_rows(rows)

    def increment_view_count(self, song_id: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE songs SET view_count = view_count + 1 WHERE id = ?",
                (song_id,),
            )

    # Ratings, favorites and comments

    def rate_song(self, song_id: str, user_id: str, rating: int) -> tuple[float, int]:
        """Record a user's rating, replacing any earlier one.

        Args:
            song_id: Song being rated
            user_id: Rating user
            rating: 1 to 5

        Returns:
            Tuple of (average rating rounded to 1 decimal, rating count)

        Raises:
            ValueError: If the rating is outside 1-5
        """
        if not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO ratings (song_id, user_id, rating) VALUES (?, ?, ?)
                ON CONFLICT (song_id, user_id) DO UPDATE SET
                    rating = excluded.rating, created_at = datetime('now')
                """,
                (song_id, user_id, rating),
            )
        return self.get_rating_summary(song_id)

    def get_rating_summary(self, song_id: str) -> tuple[float, int]:
        row = self._fetchone(
            "SELECT COALESCE(AVG(rating), 0), COUNT(*) FROM ratings WHERE song_id = ?",
            (song_id,),
        )
        return round(float(row[0]), 1), int(row[1])

    def toggle_favorite(self, song_id: str, user_id: str) -> bool:
        """Add the song to the user's favorites, or remove it if present.

        Returns:
            True if the song is now a favorite
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM favorites WHERE song_id = ? AND user_id = ?", (song_id, user_id)
            )
            if cursor.rowcount:
                return False
            conn.execute(
                "INSERT INTO favorites (song_id, user_id) VALUES (?, ?)", (song_id, user_id)
            )
            return True

    def is_favorite(self, song_id: str, user_id: str) -> bool:
        row = self._fetchone(
            "SELECT 1 FROM favorites WHERE song_id = ? AND user_id = ?", (song_id, user_id)
        )
        return row is not None

    def list_favorites(self, user_id: str) -> list[Song]:
        rows = self._fetchall(
            f"{_SONG_SELECT} JOIN favorites f ON f.song_id = s.id "
            "WHERE f.user_id = ? GROUP BY s.id ORDER BY MAX(f.created_at) DESC, s.id",
            (user_id,),
        )
        return self._songs_from_rows(rows)

    def add_comment(self, comment: Comment) -> Comment:
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO comments (id, song_id, user_id, user_name, text)
                VALUES (?, ?, ?, ?, ?)
                """,
                (comment.id, comment.song_id, comment.user_id, comment.user_name, comment.text),
            )
        row = self._fetchone(
            "SELECT id, song_id, user_id, user_name, text, created_at FROM comments WHERE id = ?",
            (comment.id,),
        )
        return Comment.from_row(tuple(row))

    def list_comments(self, song_id: str) -> list[Comment]:
        rows = self._fetchall(
            "SELECT id, song_id, user_id, user_name, text, created_at FROM comments "
            "WHERE song_id = ? ORDER BY created_at, rowid",
            (song_id,),
        )
        return [Comment.from_row(tuple(row)) for row in rows]
