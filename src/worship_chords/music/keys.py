"""Musical key names and semitone arithmetic.

Keys are one of 17 names covering the 12 pitch classes with their common
sharp and flat spellings. Positions run 0-11 with C = 0.
"""

from typing import Optional

from worship_chords.errors import InvalidKey
from worship_chords.logging_config import get_logger

logger = get_logger(__name__)

# Key name -> chromatic position
KEY_POSITIONS = {
    "C": 0,
    "C#": 1,
    "Db": 1,
    "D": 2,
    "D#": 3,
    "Eb": 3,
    "E": 4,
    "F": 5,
    "F#": 6,
    "Gb": 6,
    "G": 7,
    "G#": 8,
    "Ab": 8,
    "A": 9,
    "A#": 10,
    "Bb": 10,
    "B": 11,
}

# Selectable keys in display order
KEY_NAMES = list(KEY_POSITIONS)

SHARP_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
FLAT_NAMES = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

# Name used for a key reached by transposition (fewest accidentals)
CONVENTIONAL_KEY_NAMES = ["C", "Db", "D", "Eb", "E", "F", "F#", "G", "Ab", "A", "Bb", "B"]

# Keys whose signatures are written with flats, with their relative minors
FLAT_KEYS = frozenset(
    {
        "F", "Bb", "Eb", "Ab", "Db", "Gb",
        "Dm", "Gm", "Cm", "Fm", "Bbm", "Ebm",
    }
)


def normalize_key(key: str) -> str:
    """Trim a key name and uppercase its first letter.

    The accidental is left untouched so "bb" becomes "Bb" rather than "BB".
    """
    key = key.strip()
    if not key:
        return key
    return key[0].upper() + key[1:]


def key_to_chromatic_position(key: str) -> Optional[int]:
    """Look up the chromatic position of a key name.

    Args:
        key: Key name such as "G", " db" or "F#"

    Returns:
        Position in [0, 11], or None when the key is not recognized
    """
    if not isinstance(key, str):
        return None
    return KEY_POSITIONS.get(normalize_key(key))


def parse_key(key: str) -> int:
    """Like key_to_chromatic_position but raises for unknown keys.

    Raises:
        InvalidKey: If the key is not one of the recognized names
    """
    position = key_to_chromatic_position(key)
    if position is None:
        raise InvalidKey(key)
    return position


def normalize_semitones(steps: int) -> int:
    """Fold a semitone count onto the shorter rotation, within [-6, 6]."""
    steps = int(steps)
    if steps > 6 or steps < -6:
        steps %= 12
        if steps > 6:
            steps -= 12
    return steps


def semitone_distance(from_key: str, to_key: str) -> int:
    """Signed semitone distance from one key to another.

    Unrecognized keys are logged and treated as "no transposition".

    Args:
        from_key: Original key name
        to_key: Target key name

    Returns:
        Offset in [-6, 6]; 0 if either key is invalid
    """
    try:
        start = parse_key(from_key)
        end = parse_key(to_key)
    except InvalidKey as e:
        logger.warning(f"Cannot compute semitone distance {from_key!r} -> {to_key!r}: {e}")
        return 0

    diff = end - start
    if diff > 6:
        diff -= 12
    elif diff < -6:
        diff += 12
    return diff


def prefers_flats(key: Optional[str]) -> bool:
    """Whether chords in this key are conventionally spelled with flats."""
    if not key:
        return False
    return normalize_key(key) in FLAT_KEYS


def note_name(position: int, prefer_flats: bool = False) -> str:
    """Spell a chromatic position as a note name."""
    names = FLAT_NAMES if prefer_flats else SHARP_NAMES
    return names[position % 12]


def key_for_offset(original_key: str, steps: int) -> str:
    """Name of the key reached by moving ``steps`` semitones from a key.

    Args:
        original_key: Starting key name
        steps: Signed semitone offset

    Returns:
        Target key name; the original key itself when the offset is a
        whole number of octaves

    Raises:
        InvalidKey: If the original key is not recognized
    """
    position = parse_key(original_key)
    if steps % 12 == 0:
        return normalize_key(original_key)
    return CONVENTIONAL_KEY_NAMES[(position + steps) % 12]
