"""SQL schema definitions for the worship-chords database."""

CREATE_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    is_admin INTEGER NOT NULL DEFAULT 0,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);
"""

CREATE_AUTH_SESSIONS_TABLE = """
CREATE TABLE IF NOT EXISTS auth_sessions (
    token TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    created_at TEXT DEFAULT (datetime('now')),
    expires_at TEXT NOT NULL
);
"""

CREATE_SONGS_TABLE = """
CREATE TABLE IF NOT EXISTS songs (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    artist TEXT,
    writer TEXT NOT NULL,
    original_key TEXT NOT NULL,
    current_key TEXT,
    sections TEXT,  -- JSON chord chart
    lyrics_text TEXT,  -- chord-over-lyrics text
    image_url TEXT,
    video_id TEXT,
    spotify_id TEXT,
    vocals_url TEXT,
    instrumental_url TEXT,
    tempo INTEGER,
    time_signature TEXT NOT NULL DEFAULT '4/4',
    capo INTEGER NOT NULL DEFAULT 0,
    difficulty TEXT NOT NULL DEFAULT 'intermediate',
    created_by TEXT REFERENCES users(id) ON DELETE SET NULL,
    view_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);
"""

CREATE_SONG_TAGS_TABLE = """
CREATE TABLE IF NOT EXISTS song_tags (
    song_id TEXT NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
    tag TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (song_id, tag)
);
"""

CREATE_RATINGS_TABLE = """
CREATE TABLE IF NOT EXISTS ratings (
    song_id TEXT NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
    created_at TEXT DEFAULT (datetime('now')),
    PRIMARY KEY (song_id, user_id)
);
"""

CREATE_FAVORITES_TABLE = """
CREATE TABLE IF NOT EXISTS favorites (
    song_id TEXT NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    created_at TEXT DEFAULT (datetime('now')),
    PRIMARY KEY (song_id, user_id)
);
"""

CREATE_COMMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS comments (
    id TEXT PRIMARY KEY,
    song_id TEXT NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    user_name TEXT NOT NULL,
    text TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now'))
);
"""

CREATE_INDEXES = [
    """
    CREATE INDEX IF NOT EXISTS idx_songs_original_key
    ON songs(original_key);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_songs_difficulty
    ON songs(difficulty);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_songs_created_by
    ON songs(created_by);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_song_tags_tag
    ON song_tags(tag);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_comments_song_id
    ON comments(song_id, created_at);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_auth_sessions_user_id
    ON auth_sessions(user_id);
    """,
]

ALL_SCHEMA_STATEMENTS = [
    CREATE_USERS_TABLE,
    CREATE_AUTH_SESSIONS_TABLE,
    CREATE_SONGS_TABLE,
    CREATE_SONG_TAGS_TABLE,
    CREATE_RATINGS_TABLE,
    CREATE_FAVORITES_TABLE,
    CREATE_COMMENTS_TABLE,
    *CREATE_INDEXES,
]

# Row counts per table, for stats
ROW_COUNT_QUERY = """
SELECT 'users', COUNT(*) FROM users
UNION ALL SELECT 'songs', COUNT(*) FROM songs
UNION ALL SELECT 'ratings', COUNT(*) FROM ratings
UNION ALL SELECT 'favorites', COUNT(*) FROM favorites
UNION ALL SELECT 'comments', COUNT(*) FROM comments
"""

INTEGRITY_CHECK_QUERY = "PRAGMA integrity_check"

FOREIGN_KEYS_QUERY = "PRAGMA foreign_keys"
