"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worship Chords configuration.

    Values come from the environment or a local ``.env`` file. Object
    storage and separation-service credentials are read directly from the
    environment by their clients and are not stored here.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Storage
    DB_PATH: Path = Path("data/worship_chords.db")
    LOG_DIR: Path = Path("logs")

    # Auth
    SESSION_TTL_HOURS: int = 24 * 7

    # R2 / S3-compatible object storage
    WC_R2_BUCKET: str = "worship-chords"
    WC_R2_ENDPOINT_URL: str = ""
    WC_R2_PUBLIC_URL: str = ""  # e.g., "https://media.example.com"
    WC_R2_REGION: str = "auto"
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024

    # LLM Configuration (OpenAI-compatible API for song detail completion)
    WC_LLM_API_KEY: str = ""
    WC_LLM_BASE_URL: str = ""  # e.g., "https://openrouter.ai/api/v1"
    WC_LLM_MODEL: str = "gpt-4o-mini"

    # Lyric lookup
    GENIUS_ACCESS_TOKEN: str = ""
    LYRICS_API_URL: str = "https://api.lyrics.ovh"

    # Stem separation service
    WC_SEPARATION_URL: str = ""

    # Playback
    AUDIO_SAMPLE_RATE: int = 44100
    AUDIO_BUFFER_MS: int = 200
    AUDIO_VOLUME: float = 0.8


settings = Settings()
