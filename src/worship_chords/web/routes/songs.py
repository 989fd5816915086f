"""Song catalog endpoints."""

import json
from dataclasses import replace
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from worship_chords.db.client import DatabaseClient
from worship_chords.db.models import Comment, Song, User
from worship_chords.db.search import DEFAULT_SORT, SongQuery
from worship_chords.logging_config import get_logger
from worship_chords.music.chord_text import parse_chord_sheet
from worship_chords.services.auth import can_edit
from worship_chords.web.deps import (
    get_current_user,
    get_db,
    get_song_or_404,
    require_song_editor,
    require_user,
)
from worship_chords.web.routes.transpose import transpose_content
from worship_chords.web.schemas import (
    CommentRequest,
    Difficulty,
    FavoriteResponse,
    PaginationModel,
    RatingRequest,
    RatingResponse,
    SongCreate,
    SongCreatedResponse,
    SongListResponse,
    SongSummary,
    SongUpdate,
    TransposeResponse,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/songs", tags=["songs"])

# Song columns that may be changed but never cleared
NON_NULL_FIELDS = ("title", "writer", "original_key", "time_signature", "capo", "difficulty")


def _sections_json(sections, lyrics_text: Optional[str]) -> Optional[str]:
    """Chart JSON for storage, derived from the text when no chart was sent."""
    if sections is not None:
        return json.dumps(sections.model_dump())
    if lyrics_text:
        return json.dumps(parse_chord_sheet(lyrics_text).to_dict())
    return None


@router.get("", response_model=SongListResponse)
def list_songs(
    search: Optional[str] = None,
    key: Optional[str] = None,
    difficulty: Optional[Difficulty] = None,
    sort: str = DEFAULT_SORT,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: DatabaseClient = Depends(get_db),
) -> SongListResponse:
    """Search and page through the catalog.

    Args:
        search: Text matched against title, artist, writer and tags
        key: Original key filter
        difficulty: Difficulty filter
        sort: Sort field, "-" prefix for descending
        page: 1-based page number
        limit: Page size

    Returns:
        Songs on the page with pagination info
    """
    songs, pagination = db.list_songs(
        SongQuery(search=search, key=key, difficulty=difficulty, sort=sort, page=page, limit=limit)
    )
    return SongListResponse(
        songs=[song.to_dict() for song in songs],
        pagination=PaginationModel(**pagination.to_dict()),
    )


@router.get("/popular")
def popular_songs(limit: int = Query(10, ge=1, le=50), db: DatabaseClient = Depends(get_db)) -> dict:
    return {"songs": [song.to_dict() for song in db.list_popular(limit)]}


@router.get("/favorites")
def favorite_songs(user: User = Depends(require_user), db: DatabaseClient = Depends(get_db)) -> dict:
    return {"songs": [song.to_dict() for song in db.list_favorites(user.id)]}


@router.post("", response_model=SongCreatedResponse, status_code=201)
def create_song(
    request: SongCreate,
    user: User = Depends(require_user),
    db: DatabaseClient = Depends(get_db),
) -> SongCreatedResponse:
    """Submit a new song owned by the signed-in user."""
    song = Song(
        id=Song.generate_id(),
        title=request.title.strip(),
        artist=request.artist,
        writer=request.writer.strip(),
        original_key=request.original_key,
        current_key=request.current_key,
        sections=_sections_json(request.sections, request.lyrics_text),
        lyrics_text=request.lyrics_text,
        image_url=request.image_url,
        video_id=request.video_id,
        spotify_id=request.spotify_id,
        tags=[t.strip() for t in request.tags if t.strip()],
        tempo=request.tempo,
        time_signature=request.time_signature,
        capo=request.capo,
        difficulty=request.difficulty,
        created_by=user.id,
    )
    song = db.insert_song(song)
    return SongCreatedResponse(
        success=True,
        song=SongSummary(id=song.id, title=song.title, artist=song.artist, writer=song.writer),
    )


@router.get("/{song_id}")
def get_song(
    song: Song = Depends(get_song_or_404),
    user: Optional[User] = Depends(get_current_user),
    db: DatabaseClient = Depends(get_db),
) -> dict:
    """Song detail; each request counts as a view."""
    db.increment_view_count(song.id)
    data = db.get_song(song.id).to_dict()
    data["is_favorite"] = db.is_favorite(song.id, user.id) if user else False
    data["can_edit"] = bool(user) and can_edit(user, song)
    return {"song": data}


@router.put("/{song_id}")
def update_song(
    request: SongUpdate,
    song: Song = Depends(require_song_editor),
    db: DatabaseClient = Depends(get_db),
) -> dict:
    """Edit a song (owner or admin)."""
    changes = request.model_dump(exclude_unset=True)
    if "sections" in changes:
        changes["sections"] = _sections_json(request.sections, None)
    elif changes.get("lyrics_text"):
        changes["sections"] = _sections_json(None, changes["lyrics_text"])
    for required in NON_NULL_FIELDS:
        if required in changes and changes[required] is None:
            raise HTTPException(400, f"{required} cannot be empty")
    if changes.get("tags") is None:
        changes.pop("tags", None)

    updated = db.update_song(replace(song, **changes))
    logger.info(f"Updated song {song.id}: {sorted(changes)}")
    return {"song": updated.to_dict()}


@router.delete("/{song_id}")
def delete_song(song: Song = Depends(require_song_editor), db: DatabaseClient = Depends(get_db)) -> dict:
    db.delete_song(song.id)
    return {"success": True}


@router.get("/{song_id}/transpose", response_model=TransposeResponse)
def transpose_song(
    key: Optional[str] = None,
    steps: Optional[int] = Query(None, ge=-11, le=11),
    song: Song = Depends(get_song_or_404),
) -> TransposeResponse:
    """Song chart and text moved to a key or by a semitone offset."""
    return transpose_content(song.chart, song.lyrics_text, song.original_key, target_key=key, steps=steps)


@router.post("/{song_id}/rate", response_model=RatingResponse)
def rate_song(
    request: RatingRequest,
    song: Song = Depends(get_song_or_404),
    user: User = Depends(require_user),
    db: DatabaseClient = Depends(get_db),
) -> RatingResponse:
    """Rate a song 1-5; rating again replaces the earlier rating."""
    average, count = db.rate_song(song.id, user.id, request.rating)
    return RatingResponse(average_rating=average, rating_count=count)


@router.post("/{song_id}/favorite", response_model=FavoriteResponse)
def toggle_favorite(
    song: Song = Depends(get_song_or_404),
    user: User = Depends(require_user),
    db: DatabaseClient = Depends(get_db),
) -> FavoriteResponse:
    return FavoriteResponse(favorite=db.toggle_favorite(song.id, user.id))


@router.get("/{song_id}/comments")
def list_comments(song: Song = Depends(get_song_or_404), db: DatabaseClient = Depends(get_db)) -> dict:
    return {"comments": [c.to_dict() for c in db.list_comments(song.id)]}


@router.post("/{song_id}/comments", status_code=201)
def add_comment(
    request: CommentRequest,
    song: Song = Depends(get_song_or_404),
    user: User = Depends(require_user),
    db: DatabaseClient = Depends(get_db),
) -> dict:
    text = request.text.strip()
    if not text:
        raise HTTPException(400, "Comment cannot be empty")
    comment = db.add_comment(
        Comment(
            id=Comment.generate_id(),
            song_id=song.id,
            user_id=user.id,
            user_name=user.name,
            text=text,
        )
    )
    return {"comment": comment.to_dict()}
