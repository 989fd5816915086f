"""Pydantic request and response models for the web API."""

import re
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from worship_chords.music.keys import KEY_NAMES, normalize_key

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
IMAGE_URL_PATTERN = r"^https?://.+\.(jpg|jpeg|png|webp|gif)$"
VIDEO_ID_PATTERN = r"^[a-zA-Z0-9_-]{11}$"

TimeSignature = Literal["2/4", "3/4", "4/4", "5/4", "6/8", "9/8", "12/8"]
Difficulty = Literal["beginner", "intermediate", "advanced"]


def _validate_key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    key = normalize_key(value)
    if key not in KEY_NAMES:
        raise ValueError(f"Key must be one of: {', '.join(KEY_NAMES)}")
    return key


# Auth


class RegisterRequest(BaseModel):
    """Account registration."""

    name: str = Field(min_length=2, max_length=50)
    email: str
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    is_admin: bool = False


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class LoginResponse(BaseModel):
    token: str
    expires_at: str
    user: UserResponse


# Chord charts


class ChordPlacementModel(BaseModel):
    chord: str
    position: int = Field(default=0, ge=0)


class ChordLineModel(BaseModel):
    lyrics: str = ""
    chords: list[ChordPlacementModel] = Field(default_factory=list)


class SectionModel(BaseModel):
    name: str
    lines: list[ChordLineModel] = Field(default_factory=list)


class ChordChartModel(BaseModel):
    sections: list[SectionModel] = Field(default_factory=list)


# Songs


class SongCreate(BaseModel):
    """New song submission."""

    title: str = Field(min_length=1, max_length=200)
    artist: Optional[str] = Field(default=None, max_length=100)
    writer: str = Field(min_length=1, max_length=200)
    original_key: str
    current_key: Optional[str] = None
    sections: Optional[ChordChartModel] = None
    lyrics_text: Optional[str] = None
    image_url: Optional[str] = Field(default=None, pattern=IMAGE_URL_PATTERN)
    video_id: Optional[str] = Field(default=None, pattern=VIDEO_ID_PATTERN)
    spotify_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list, max_length=10)
    tempo: Optional[int] = Field(default=None, ge=40, le=240)
    time_signature: TimeSignature = "4/4"
    capo: int = Field(default=0, ge=0, le=12)
    difficulty: Difficulty = "intermediate"

    @field_validator("original_key", "current_key")
    @classmethod
    def validate_key(cls, v: Optional[str]) -> Optional[str]:
        return _validate_key(v)

    @field_validator("image_url", "video_id", "spotify_id", "artist", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SongUpdate(BaseModel):
    """Partial song edit; only fields sent are changed."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    artist: Optional[str] = Field(default=None, max_length=100)
    writer: Optional[str] = Field(default=None, min_length=1, max_length=200)
    original_key: Optional[str] = None
    current_key: Optional[str] = None
    sections: Optional[ChordChartModel] = None
    lyrics_text: Optional[str] = None
    image_url: Optional[str] = Field(default=None, pattern=IMAGE_URL_PATTERN)
    video_id: Optional[str] = Field(default=None, pattern=VIDEO_ID_PATTERN)
    spotify_id: Optional[str] = None
    tags: Optional[list[str]] = Field(default=None, max_length=10)
    tempo: Optional[int] = Field(default=None, ge=40, le=240)
    time_signature: Optional[TimeSignature] = None
    capo: Optional[int] = Field(default=None, ge=0, le=12)
    difficulty: Optional[Difficulty] = None

    @field_validator("original_key", "current_key")
    @classmethod
    def validate_key(cls, v: Optional[str]) -> Optional[str]:
        return _validate_key(v)


class SongSummary(BaseModel):
    id: str
    title: str
    artist: Optional[str] = None
    writer: str


class SongCreatedResponse(BaseModel):
    success: bool = True
    song: SongSummary


class PaginationModel(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class SongListResponse(BaseModel):
    songs: list[dict]
    pagination: PaginationModel


class RatingRequest(BaseModel):
    rating: int = Field(ge=1, le=5)


class RatingResponse(BaseModel):
    average_rating: float
    rating_count: int


class FavoriteResponse(BaseModel):
    favorite: bool


class CommentRequest(BaseModel):
    text: str = Field(min_length=1, max_length=500)


# Transposition


class TransposeRequest(BaseModel):
    """Stateless transposition of a chart and/or chord-over-lyrics text.

    Give either a target key (with the original key) or a semitone offset.
    """

    chart: Optional[ChordChartModel] = None
    lyrics_text: Optional[str] = None
    original_key: Optional[str] = None
    target_key: Optional[str] = None
    steps: Optional[int] = Field(default=None, ge=-11, le=11)


class TransposeResponse(BaseModel):
    original_key: Optional[str] = None
    target_key: Optional[str] = None
    semitones: int
    chart: Optional[ChordChartModel] = None
    lyrics_text: Optional[str] = None


# Media and assistance


class MediaResponse(BaseModel):
    success: bool = True
    vocals_url: Optional[str] = None
    instrumental_url: Optional[str] = None
    message: str


class FetchLyricsRequest(BaseModel):
    title: str = Field(min_length=1)
    artist: Optional[str] = None


class GenerateDetailsRequest(BaseModel):
    title: str = Field(min_length=1)
    artist: Optional[str] = None
