"""Vocals stem upload and extraction endpoints."""

import os
from dataclasses import replace

import requests
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from worship_chords.config import settings
from worship_chords.db.client import DatabaseClient
from worship_chords.db.models import Song
from worship_chords.logging_config import get_logger
from worship_chords.services.r2 import R2Client, StorageError
from worship_chords.services.separation import SeparationClient, SeparationServiceError
from worship_chords.web.deps import get_db, get_separation_client, get_storage, require_song_editor
from worship_chords.web.schemas import MediaResponse

logger = get_logger(__name__)
router = APIRouter(prefix="/songs", tags=["media"])

ALLOWED_AUDIO_TYPES = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
}
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def _replace_old_vocals(storage: R2Client, song: Song) -> None:
    """Best-effort delete of the stem a song is about to stop pointing at."""
    if not song.vocals_url:
        return
    try:
        storage.delete_by_url(song.vocals_url)
    except StorageError as e:
        logger.warning(f"Could not delete old vocals for {song.id}: {e}")


@router.post("/{song_id}/upload-vocals", response_model=MediaResponse)
async def upload_vocals(
    file: UploadFile = File(...),
    song: Song = Depends(require_song_editor),
    storage: R2Client = Depends(get_storage),
    db: DatabaseClient = Depends(get_db),
) -> MediaResponse:
    """Upload a vocals stem for a song.

    Args:
        file: WAV, MP3 or M4A audio

    Returns:
        URL of the stored stem

    Raises:
        HTTPException: 400 for a wrong file type or an oversized file
    """
    extension = ALLOWED_AUDIO_TYPES.get(file.content_type or "")
    if extension is None:
        raise HTTPException(400, "Invalid file type. Please upload WAV, MP3, or M4A")

    data = await file.read()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise HTTPException(400, f"File size exceeds {limit_mb}MB limit")

    _, ext = os.path.splitext(file.filename or "")
    key = R2Client.vocals_key(song.title, ext.lstrip(".").lower() or extension)
    try:
        url = storage.upload_bytes(data, key, file.content_type)
    except StorageError as e:
        raise HTTPException(502, str(e))

    _replace_old_vocals(storage, song)
    db.update_song(replace(song, vocals_url=url))
    return MediaResponse(vocals_url=url, message="Vocals uploaded successfully")


@router.post("/{song_id}/extract-vocals", response_model=MediaResponse)
def extract_vocals(
    song: Song = Depends(require_song_editor),
    storage: R2Client = Depends(get_storage),
    separation: SeparationClient = Depends(get_separation_client),
    db: DatabaseClient = Depends(get_db),
) -> MediaResponse:
    """Separate vocals from the song's YouTube video.

    The separation job runs on the remote service; the vocals stem is
    copied into our bucket so the song keeps working if the job's
    storage expires.

    Raises:
        HTTPException: 400 if the song has no video, 502 if separation fails
    """
    if not song.video_id:
        raise HTTPException(400, "Song must have a YouTube video")
    if song.vocals_url:
        return MediaResponse(
            vocals_url=song.vocals_url,
            instrumental_url=song.instrumental_url,
            message="Vocals already extracted",
        )

    source_url = YOUTUBE_WATCH_URL.format(video_id=song.video_id)
    try:
        job = separation.submit(source_url, song_id=song.id)
        job = separation.wait_for_completion(job.job_id)
    except SeparationServiceError as e:
        logger.error(f"Vocal extraction failed for {song.id}: {e}")
        raise HTTPException(502, str(e))

    if not job.vocals_url:
        raise HTTPException(502, "Separation finished without a vocals stem")

    try:
        response = requests.get(job.vocals_url, timeout=120)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise HTTPException(502, f"Failed to download vocals: {e}")

    try:
        url = storage.upload_bytes(response.content, R2Client.vocals_key(song.title, "wav"), "audio/wav")
    except StorageError as e:
        raise HTTPException(502, str(e))

    db.update_song(replace(song, vocals_url=url, instrumental_url=job.instrumental_url))
    logger.info(f"Extracted vocals for {song.id} (job {job.job_id})")
    return MediaResponse(
        vocals_url=url,
        instrumental_url=job.instrumental_url,
        message="Vocals extracted successfully",
    )
