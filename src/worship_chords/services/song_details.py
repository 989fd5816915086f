"""AI completion of song details.

Given a title, an OpenAI-compatible LLM fills in the artist, writer, key,
tempo, time signature, difficulty, tags and a chord-over-lyrics draft.
Everything it returns is validated before use.
"""

import json
from dataclasses import dataclass, field
from typing import Any, List, Optional

import openai

from worship_chords.db.models import DIFFICULTIES, TIME_SIGNATURES
from worship_chords.logging_config import get_logger
from worship_chords.music.keys import KEY_NAMES, normalize_key

logger = get_logger(__name__)

MAX_TAGS = 10

PROMPT_TEMPLATE = """You are a worship song expert. Given the song title "{title}"{artist_clause}, provide ALL of the following information as a JSON object:

1. "artist": The performing artist/worship leader (e.g., "Hillsong Worship", "Chris Tomlin"). Empty string if truly unknown.
2. "writer": The songwriter/composer (REQUIRED - best guess if needed, e.g., "Traditional", "Unknown").
3. "original_key": One of these exact keys: {keys}
4. "tempo": BPM number between 40 and 240.
5. "time_signature": One of: {time_signatures}
6. "difficulty": One of: {difficulties}
7. "tags": Array of 3-8 relevant tags (e.g., ["worship", "contemporary", "praise", "ballad"]).
8. "lyrics_text": Full lyrics with chords in this EXACT format:
   - Section labels in brackets: [Verse 1], [Chorus], [Bridge]
   - Chords on the line above the lyrics, aligned with syllables using spaces

[Verse 1]
       G              D/F#         Em7
Amazing grace, how sweet the sound
     C              G/B          Am7      D
That saved a wretch like me

Include at least a verse and a chorus. If the song is unknown, make reasonable worship song suggestions.

Respond with ONLY the JSON object, no markdown formatting."""


@dataclass
class SongDetails:
    """Validated AI-suggested song details."""

    writer: str
    original_key: str
    artist: Optional[str] = None
    tempo: Optional[int] = None
    time_signature: Optional[str] = None
    difficulty: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    lyrics_text: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "artist": self.artist,
            "writer": self.writer,
            "original_key": self.original_key,
            "tempo": self.tempo,
            "time_signature": self.time_signature,
            "difficulty": self.difficulty,
            "tags": self.tags,
            "lyrics_text": self.lyrics_text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SongDetails":
        """Build from raw LLM output, dropping values that fail validation.

        Raises:
            ValueError: If the writer or key is missing or invalid
        """
        writer = str(data.get("writer") or "").strip()
        if not writer:
            raise ValueError("missing writer")

        key = normalize_key(str(data.get("original_key") or data.get("originalKey") or ""))
        if key not in KEY_NAMES:
            raise ValueError(f"invalid key {key!r}")

        tempo = data.get("tempo")
        try:
            tempo = int(tempo) if tempo is not None else None
        except (TypeError, ValueError):
            tempo = None
        if tempo is not None and not 40 <= tempo <= 240:
            tempo = None

        time_signature = data.get("time_signature") or data.get("timeSignature")
        if time_signature not in TIME_SIGNATURES:
            time_signature = None

        difficulty = str(data.get("difficulty") or "").lower() or None
        if difficulty not in DIFFICULTIES:
            difficulty = None

        tags = [str(t).strip() for t in data.get("tags") or [] if str(t).strip()][:MAX_TAGS]

        return cls(
            artist=str(data.get("artist") or "").strip() or None,
            writer=writer,
            original_key=key,
            tempo=tempo,
            time_signature=time_signature,
            difficulty=difficulty,
            tags=tags,
            lyrics_text=data.get("lyrics_text") or data.get("lyricsText") or None,
        )


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


class SongDetailsGenerator:
    """Generate song details with an OpenAI-compatible LLM."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", api_base: Optional[str] = None):
        """Initialize the generator.

        Args:
            api_key: LLM API key
            model: Model identifier
            api_base: Custom API base URL (OpenRouter and similar)
        """
        self.model = model
        self.api_key = api_key
        self.api_base = api_base or None
        self._client: Optional[Any] = None

    @property
    def client(self) -> "openai.OpenAI":
        """Get or create LLM client."""
        if self._client is None:
            if not self.api_key:
                raise ValueError("LLM API key required. Set WC_LLM_API_KEY.")
            self._client = openai.OpenAI(api_key=self.api_key, base_url=self.api_base)
        return self._client

    def build_prompt(self, title: str, artist: Optional[str] = None) -> str:
        return PROMPT_TEMPLATE.format(
            title=title,
            artist_clause=f' by "{artist}"' if artist else "",
            keys=", ".join(KEY_NAMES),
            time_signatures=", ".join(TIME_SIGNATURES),
            difficulties=", ".join(DIFFICULTIES),
        )

    def generate(self, title: str, artist: Optional[str] = None) -> SongDetails:
        """Generate details for a song title.

        Args:
            title: Song title
            artist: Artist hint (optional)

        Returns:
            Validated SongDetails

        Raises:
            ValueError: If no API key is configured
            RuntimeError: If the LLM call fails or returns unusable output
        """
        client = self.client
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": self.build_prompt(title, artist)}],
                temperature=0.4,
                max_tokens=2500,
            )
            content = _strip_code_fence(response.choices[0].message.content or "")
            data = json.loads(content)
            details = SongDetails.from_dict(data)
        except json.JSONDecodeError as e:
            raise RuntimeError(f"LLM returned invalid JSON: {e}")
        except ValueError as e:
            raise RuntimeError(f"LLM returned unusable details: {e}")
        except openai.OpenAIError as e:
            raise RuntimeError(f"Song detail generation failed: {e}")

        logger.info(f"Generated details for {title!r}: key={details.original_key}")
        return details
