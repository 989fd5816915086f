"""Key and chord transposition.

Pure functions over key names, chord symbols, structured chord charts and
chord-over-lyrics text. Nothing here holds state or performs I/O.
"""

from worship_chords.music.chart import (
    ChordChart,
    ChordLine,
    ChordPlacement,
    Section,
    transpose_chart_to_key,
    transpose_chord_chart,
)
from worship_chords.music.chord_text import (
    parse_chord_sheet,
    render_chord_sheet,
    target_key_for,
    transpose_lyrics_text,
    transpose_text,
)
from worship_chords.music.chords import ChordSymbol, parse_chord, transpose_chord_symbol
from worship_chords.music.keys import (
    KEY_NAMES,
    key_for_offset,
    key_to_chromatic_position,
    prefers_flats,
    semitone_distance,
)

__all__ = [
    "KEY_NAMES",
    "ChordChart",
    "ChordLine",
    "ChordPlacement",
    "ChordSymbol",
    "Section",
    "key_for_offset",
    "key_to_chromatic_position",
    "parse_chord",
    "parse_chord_sheet",
    "prefers_flats",
    "render_chord_sheet",
    "semitone_distance",
    "target_key_for",
    "transpose_chart_to_key",
    "transpose_chord_chart",
    "transpose_chord_symbol",
    "transpose_lyrics_text",
    "transpose_text",
]
