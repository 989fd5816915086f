"""Song entry helpers: lyric lookup and detail completion."""

from fastapi import APIRouter, Depends, HTTPException

from worship_chords.db.models import User
from worship_chords.logging_config import get_logger
from worship_chords.services.lyrics_lookup import LyricsLookupClient, LyricsLookupError
from worship_chords.services.song_details import SongDetailsGenerator
from worship_chords.web.deps import get_details_generator, get_lyrics_client, require_user
from worship_chords.web.schemas import FetchLyricsRequest, GenerateDetailsRequest

logger = get_logger(__name__)
router = APIRouter(prefix="/assist", tags=["assist"])


@router.post("/fetch-lyrics")
def fetch_lyrics(
    request: FetchLyricsRequest,
    user: User = Depends(require_user),
    client: LyricsLookupClient = Depends(get_lyrics_client),
) -> dict:
    """Look up lyrics and artwork for a song being entered."""
    try:
        result = client.lookup(request.title.strip(), request.artist)
    except LyricsLookupError as e:
        raise HTTPException(e.status_code or 502, str(e))
    return result.to_dict()


@router.post("/generate-details")
def generate_details(
    request: GenerateDetailsRequest,
    user: User = Depends(require_user),
    generator: SongDetailsGenerator = Depends(get_details_generator),
) -> dict:
    """Suggest writer, key, tempo and other details for a song."""
    try:
        details = generator.generate(request.title.strip(), request.artist)
    except RuntimeError as e:
        logger.error(f"Detail generation failed for {request.title!r}: {e}")
        raise HTTPException(500, "Failed to generate song details")
    return {"success": True, "details": details.to_dict()}
