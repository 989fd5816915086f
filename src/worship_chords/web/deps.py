"""Shared FastAPI dependencies.

The database client is created in the app lifespan and registered here;
external service clients are built per request from settings so missing
credentials surface as a clear error on the routes that need them.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from worship_chords.config import settings
from worship_chords.db.client import DatabaseClient
from worship_chords.db.models import Song, User
from worship_chords.services.auth import AuthService, can_edit
from worship_chords.services.lyrics_lookup import LyricsLookupClient
from worship_chords.services.r2 import R2Client
from worship_chords.services.separation import SeparationClient
from worship_chords.services.song_details import SongDetailsGenerator

# Global database client - set in main.py
database: Optional[DatabaseClient] = None


def set_database(db: Optional[DatabaseClient]) -> None:
    """Set the global database client reference.

    Args:
        db: DatabaseClient instance
    """
    global database
    database = db


def get_db() -> DatabaseClient:
    if database is None:
        raise HTTPException(500, "Database not initialized")
    return database


def get_auth_service(db: DatabaseClient = Depends(get_db)) -> AuthService:
    return AuthService(db, session_ttl_hours=settings.SESSION_TTL_HOURS)


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer`` header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None


def get_current_user(
    token: Optional[str] = Depends(bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[User]:
    """Signed-in user, or None for anonymous requests."""
    if not token:
        return None
    return auth.user_for_token(token)


def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    """Signed-in user.

    Raises:
        HTTPException: 401 if the request is anonymous or the token expired
    """
    if user is None:
        raise HTTPException(401, "Unauthorized. Please sign in.")
    return user


def get_song_or_404(song_id: str, db: DatabaseClient = Depends(get_db)) -> Song:
    song = db.get_song(song_id)
    if song is None:
        raise HTTPException(404, "Song not found")
    return song


def require_song_editor(
    song: Song = Depends(get_song_or_404),
    user: User = Depends(require_user),
) -> Song:
    """Song the signed-in user may edit (owner or admin).

    Raises:
        HTTPException: 403 if the user neither owns the song nor is an admin
    """
    if not can_edit(user, song):
        raise HTTPException(403, "Forbidden")
    return song


def get_storage() -> R2Client:
    if not settings.WC_R2_ENDPOINT_URL:
        raise HTTPException(503, "Object storage not configured")
    try:
        return R2Client(
            bucket=settings.WC_R2_BUCKET,
            endpoint_url=settings.WC_R2_ENDPOINT_URL,
            region=settings.WC_R2_REGION,
            public_url=settings.WC_R2_PUBLIC_URL,
        )
    except ValueError as e:
        raise HTTPException(503, str(e))


def get_lyrics_client() -> LyricsLookupClient:
    return LyricsLookupClient(
        genius_token=settings.GENIUS_ACCESS_TOKEN,
        lyrics_api_url=settings.LYRICS_API_URL,
    )


def get_details_generator() -> SongDetailsGenerator:
    if not settings.WC_LLM_API_KEY:
        raise HTTPException(503, "Song detail generation not configured")
    return SongDetailsGenerator(
        api_key=settings.WC_LLM_API_KEY,
        model=settings.WC_LLM_MODEL,
        api_base=settings.WC_LLM_BASE_URL or None,
    )


def get_separation_client() -> SeparationClient:
    if not settings.WC_SEPARATION_URL:
        raise HTTPException(503, "Separation service not configured")
    try:
        return SeparationClient(settings.WC_SEPARATION_URL)
    except ValueError as e:
        raise HTTPException(503, str(e))
