"""Chord symbol parsing and transposition."""

import re
from dataclasses import dataclass
from typing import Optional

from worship_chords.errors import UnparsableChord
from worship_chords.logging_config import get_logger
from worship_chords.music.keys import KEY_POSITIONS, note_name

logger = get_logger(__name__)

_ROOT_RE = re.compile(r"^([A-G][#b]?)(.*)$", re.DOTALL)
_SLASH_BASS_RE = re.compile(r"^(.*)/([A-G][#b]?)$", re.DOTALL)

# Chord roots may use spellings that are never key names
NOTE_POSITIONS = {**KEY_POSITIONS, "Cb": 11, "Fb": 4, "E#": 5, "B#": 0}


@dataclass(frozen=True)
class ChordSymbol:
    """A chord split into root, quality suffix and optional slash bass.

    Attributes:
        root: Root note as written (e.g., "F#")
        quality: Everything after the root except a slash bass (e.g., "m7")
        bass: Slash bass note, if any (e.g., "E" in "C/E")
    """

    root: str
    quality: str = ""
    bass: Optional[str] = None

    def __str__(self) -> str:
        if self.bass:
            return f"{self.root}{self.quality}/{self.bass}"
        return f"{self.root}{self.quality}"

    def transpose(self, steps: int, prefer_flats: bool = False) -> "ChordSymbol":
        """Return this chord moved by ``steps`` semitones."""
        bass = transpose_note(self.bass, steps, prefer_flats) if self.bass else None
        return ChordSymbol(
            root=transpose_note(self.root, steps, prefer_flats),
            quality=self.quality,
            bass=bass,
        )


def transpose_note(note: str, steps: int, prefer_flats: bool = False) -> str:
    """Move a single note name by ``steps`` semitones."""
    return note_name((NOTE_POSITIONS[note] + steps) % 12, prefer_flats)


def parse_chord(chord: str) -> ChordSymbol:
    """Parse a chord symbol.

    Args:
        chord: Chord text such as "Am7", "D/F#" or "Bbsus4"

    Returns:
        Parsed ChordSymbol

    Raises:
        UnparsableChord: If the text does not start with a root note
    """
    match = _ROOT_RE.match(chord) if isinstance(chord, str) else None
    if not match or match.group(1) not in NOTE_POSITIONS:
        raise UnparsableChord(chord)

    root, suffix = match.groups()
    bass = None
    slash = _SLASH_BASS_RE.match(suffix)
    if slash and slash.group(2) in NOTE_POSITIONS:
        suffix, bass = slash.groups()
    return ChordSymbol(root=root, quality=suffix, bass=bass)


def transpose_chord_symbol(chord: str, steps: int, prefer_flats: bool = False) -> str:
    """Transpose a chord symbol by a number of semitones.

    Only the root and slash bass change; the quality suffix is kept as
    written. Tokens without a root note ("N.C.", "x2", annotations) come
    back unchanged.

    Args:
        chord: Chord symbol
        steps: Signed semitone offset
        prefer_flats: Spell altered notes with flats instead of sharps

    Returns:
        Transposed chord symbol
    """
    if steps % 12 == 0:
        return chord
    try:
        parsed = parse_chord(chord)
    except UnparsableChord:
        logger.debug(f"Passing through unparsable chord token: {chord!r}")
        return chord
    return str(parsed.transpose(steps, prefer_flats))
