"""Tests for the worship-chords database client."""

import json
import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from worship_chords.db.client import DatabaseClient, DuplicateEmailError
from worship_chords.db.models import Comment, Song
from worship_chords.db.search import SongQuery


class TestDatabaseClient:
    """Tests for connection and schema handling."""

    def test_initialization_creates_db(self, tmp_db_path):
        """Schema initialization creates the database file."""
        client = DatabaseClient(tmp_db_path)
        client.initialize_schema()

        assert tmp_db_path.exists()
        client.close()

    def test_context_manager(self, tmp_db_path):
        """Using the client as a context manager closes it."""
        with DatabaseClient(tmp_db_path) as client:
            client.initialize_schema()
        assert client._connection is None

    def test_initialize_schema_is_idempotent(self, db):
        db.initialize_schema()
        assert db.get_stats().total_songs == 0

    def test_initialize_schema_creates_tables(self, db):
        names = {
            row[0]
            for row in db.connection.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert {"users", "auth_sessions", "songs", "song_tags", "ratings", "favorites", "comments"} <= names

    def test_get_stats(self, db, make_user, make_song):
        user = make_user()
        make_song(created_by=user.id)

        stats = db.get_stats()

        assert stats.total_songs == 1
        assert stats.total_users == 1
        assert stats.table_counts["comments"] == 0
        assert stats.integrity_ok is True
        assert stats.foreign_keys_enabled is True

    def test_concurrent_rollback_keeps_other_threads_writes(self, db):
        """A failed transaction in one thread does not undo another thread's writes."""
        insert = "INSERT INTO songs (id, title, writer, original_key) VALUES (?, ?, ?, ?)"
        a_inside = threading.Event()
        b_started = threading.Event()

        def writer_a():
            with db.transaction() as conn:
                conn.execute(insert, ("song_a", "A", "W", "G"))
                a_inside.set()
                b_started.wait(timeout=5)
                time.sleep(0.05)

        def writer_b():
            a_inside.wait(timeout=5)
            b_started.set()
            try:
                with db.transaction() as conn:
                    conn.execute(insert, ("song_b", "B", "W", "G"))
                    raise RuntimeError("boom")
            except RuntimeError:
                pass

        threads = [threading.Thread(target=writer_a), threading.Thread(target=writer_b)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert db.get_song("song_a") is not None
        assert db.get_song("song_b") is None

    def test_ping(self, db):
        db.ping()


class TestUsers:
    """Tests for user accounts."""

    def test_create_user_lowercases_email(self, make_user):
        user = make_user(email="  Leader@Church.ORG ")
        assert user.email == "leader@church.org"
        assert user.created_at is not None

    def test_get_user_by_email_is_case_insensitive(self, db, make_user):
        user = make_user(email="leader@church.org")
        assert db.get_user_by_email("LEADER@church.org").id == user.id

    def test_duplicate_email_raises(self, make_user):
        make_user(email="dup@example.com")
        with pytest.raises(DuplicateEmailError):
            make_user(email="DUP@example.com")

    def test_missing_user(self, db):
        assert db.get_user("user_missing") is None
        assert db.get_user_by_email("nobody@example.com") is None


class TestSessions:
    """Tests for sign-in sessions."""

    def test_session_resolves_to_user(self, db, make_user):
        user = make_user()
        session = db.create_session(user.id, ttl_hours=1)

        assert db.get_session_user(session.token).id == user.id

    def test_unknown_token(self, db):
        assert db.get_session_user("nope") is None

    def test_expired_session_is_removed(self, db, make_user):
        user = make_user()
        session = db.create_session(user.id, ttl_hours=-1)

        assert db.get_session_user(session.token) is None
        count = db.connection.execute("SELECT COUNT(*) FROM auth_sessions").fetchone()[0]
        assert count == 0

    def test_delete_session(self, db, make_user):
        user = make_user()
        session = db.create_session(user.id, ttl_hours=1)
        db.delete_session(session.token)
        assert db.get_session_user(session.token) is None

    def test_purge_expired_sessions(self, db, make_user):
        user = make_user()
        db.create_session(user.id, ttl_hours=-2)
        db.create_session(user.id, ttl_hours=-1)
        live = db.create_session(user.id, ttl_hours=2)

        assert db.purge_expired_sessions() == 2
        assert db.get_session_user(live.token) is not None

    def test_expiry_is_timezone_aware(self, db, make_user):
        user = make_user()
        session = db.create_session(user.id, ttl_hours=3)
        expires = datetime.fromisoformat(session.expires_at)
        assert expires.tzinfo is not None
        assert expires > datetime.now(timezone.utc) + timedelta(hours=2)


class TestSongs:
    """Tests for song CRUD."""

    def test_insert_and_get(self, db, make_user, make_song, sample_chart):
        user = make_user()
        song = make_song(created_by=user.id, tags=["hymn", "grace"], tempo=72)

        fetched = db.get_song(song.id)

        assert fetched.title == "Amazing Grace"
        assert fetched.tags == ["hymn", "grace"]
        assert fetched.tempo == 72
        assert fetched.created_by == user.id
        assert fetched.chart.to_dict() == sample_chart
        assert fetched.average_rating == 0.0
        assert fetched.rating_count == 0

    def test_get_missing_song(self, db):
        assert db.get_song("song_missing") is None

    def test_duplicate_tags_are_stored_once(self, db, make_song):
        song = make_song(tags=["hymn", "hymn", "classic"])
        assert db.get_song(song.id).tags == ["hymn", "classic"]

    def test_update_song(self, db, make_song):
        song = make_song(tags=["hymn"])
        song.title = "Amazing Grace (My Chains Are Gone)"
        song.tags = ["modern"]
        song.capo = 2

        updated = db.update_song(song)

        assert updated.title == "Amazing Grace (My Chains Are Gone)"
        assert updated.tags == ["modern"]
        assert updated.capo == 2

    def test_update_missing_song(self, db):
        ghost = Song(id="song_missing", title="Ghost", writer="Nobody", original_key="C")
        assert db.update_song(ghost) is None

    def test_delete_song_cascades(self, db, make_user, make_song):
        user = make_user()
        song = make_song(tags=["hymn"])
        db.rate_song(song.id, user.id, 4)
        db.toggle_favorite(song.id, user.id)
        db.add_comment(Comment(Comment.generate_id(), song.id, user.id, user.name, "Lovely"))

        assert db.delete_song(song.id) is True

        assert db.get_song(song.id) is None
        for table in ("song_tags", "ratings", "favorites", "comments"):
            count = db.connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            assert count == 0, table

    def test_delete_missing_song(self, db):
        assert db.delete_song("song_missing") is False

    def test_deleting_creator_keeps_song(self, db, make_user, make_song):
        user = make_user()
        song = make_song(created_by=user.id)
        with db.transaction() as conn:
            conn.execute("DELETE FROM users WHERE id = ?", (user.id,))
        assert db.get_song(song.id).created_by is None

    def test_increment_view_count(self, db, make_song):
        song = make_song()
        db.increment_view_count(song.id)
        db.increment_view_count(song.id)
        assert db.get_song(song.id).view_count == 2

    def test_to_dict_decodes_sections(self, db, make_song, sample_chart):
        song = make_song()
        data = db.get_song(song.id).to_dict()
        assert data["sections"] == sample_chart
        assert json.loads(song.sections) == sample_chart


class TestListing:
    """Tests for listing, search and popularity."""

    @pytest.fixture
    def catalog(self, make_song):
        return {
            "grace": make_song("Amazing Grace", original_key="G", difficulty="beginner", tags=["hymn"]),
            "oceans": make_song("Oceans", writer="Matt Crocker", original_key="D", difficulty="advanced"),
            "cornerstone": make_song(
                "Cornerstone", writer="Edward Mote", original_key="C", artist="Hillsong", tags=["modern"]
            ),
            "holy": make_song("Holy Holy Holy", writer="Reginald Heber", original_key="D", tags=["hymn"]),
        }

    def test_list_all(self, db, catalog):
        songs, pagination = db.list_songs()
        assert len(songs) == 4
        assert pagination.total == 4
        assert pagination.pages == 1

    def test_search_matches_title_writer_artist_and_tags(self, db, catalog):
        by_title, _ = db.list_songs(SongQuery(search="ocean"))
        by_writer, _ = db.list_songs(SongQuery(search="heber"))
        by_artist, _ = db.list_songs(SongQuery(search="hillsong"))
        by_tag, _ = db.list_songs(SongQuery(search="hymn", sort="title"))

        assert [s.title for s in by_title] == ["Oceans"]
        assert [s.title for s in by_writer] == ["Holy Holy Holy"]
        assert [s.title for s in by_artist] == ["Cornerstone"]
        assert [s.title for s in by_tag] == ["Amazing Grace", "Holy Holy Holy"]

    def test_search_wildcards_match_literally(self, db, catalog):
        songs, pagination = db.list_songs(SongQuery(search="%"))
        assert songs == []
        assert pagination.total == 0

    def test_filter_by_key_and_difficulty(self, db, catalog):
        in_d, _ = db.list_songs(SongQuery(key="D", sort="title"))
        beginner, _ = db.list_songs(SongQuery(difficulty="Beginner"))

        assert [s.title for s in in_d] == ["Holy Holy Holy", "Oceans"]
        assert [s.title for s in beginner] == ["Amazing Grace"]

    def test_sort_descending(self, db, catalog):
        songs, _ = db.list_songs(SongQuery(sort="-title"))
        assert [s.title for s in songs][0] == "Oceans"

    def test_pagination(self, db, catalog):
        page2, pagination = db.list_songs(SongQuery(sort="title", page=2, limit=3))
        assert [s.title for s in page2] == ["Oceans"]
        assert pagination.to_dict() == {"total": 4, "page": 2, "limit": 3, "pages": 2}

    def test_list_songs_by_rating(self, db, make_user, catalog):
        user = make_user()
        db.rate_song(catalog["oceans"].id, user.id, 5)
        db.rate_song(catalog["grace"].id, user.id, 3)

        songs, _ = db.list_songs(SongQuery(sort="-rating"))

        assert [s.title for s in songs][:2] == ["Oceans", "Amazing Grace"]
        assert songs[0].average_rating == 5.0

    def test_list_popular(self, db, catalog):
        for _ in range(3):
            db.increment_view_count(catalog["holy"].id)
        db.increment_view_count(catalog["oceans"].id)

        popular = db.list_popular(limit=2)

        assert [s.title for s in popular] == ["Holy Holy Holy", "Oceans"]


class TestRatingsFavoritesComments:
    """Tests for per-user song activity."""

    def test_rating_average_and_replace(self, db, make_user, make_song):
        song = make_song()
        alice = make_user("Alice")
        bob = make_user("Bob")

        db.rate_song(song.id, alice.id, 5)
        assert db.rate_song(song.id, bob.id, 4) == (4.5, 2)
        assert db.rate_song(song.id, bob.id, 2) == (3.5, 2)

    def test_rating_rounds_to_one_decimal(self, db, make_user, make_song):
        song = make_song()
        for value in (5, 4, 4):
            db.rate_song(song.id, make_user().id, value)
        assert db.get_rating_summary(song.id) == (4.3, 3)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, db, make_user, make_song, rating):
        with pytest.raises(ValueError, match="between 1 and 5"):
            db.rate_song(make_song().id, make_user().id, rating)

    def test_toggle_favorite(self, db, make_user, make_song):
        song = make_song()
        user = make_user()

        assert db.toggle_favorite(song.id, user.id) is True
        assert db.is_favorite(song.id, user.id) is True
        assert [s.id for s in db.list_favorites(user.id)] == [song.id]

        assert db.toggle_favorite(song.id, user.id) is False
        assert db.is_favorite(song.id, user.id) is False
        assert db.list_favorites(user.id) == []

    def test_comments_in_order(self, db, make_user, make_song):
        song = make_song()
        user = make_user("Alice")
        for text in ("First", "Second"):
            db.add_comment(Comment(Comment.generate_id(), song.id, user.id, user.name, text))

        comments = db.list_comments(song.id)

        assert [c.text for c in comments] == ["First", "Second"]
        assert comments[0].user_name == "Alice"
        assert comments[0].created_at is not None
