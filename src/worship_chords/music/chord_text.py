"""Chord-over-lyrics text.

Songs entered as plain text put chords on their own line above the lyric
they belong to, with ``[Section]`` headers between parts::

    [Verse 1]
    G          C        G
    Amazing grace how sweet the sound

Inline chords in brackets (``Amazing [G]grace``) are also recognized.
"""

import re
from typing import List, Optional

from worship_chords.logging_config import get_logger
from worship_chords.music.chart import ChordChart, ChordLine, ChordPlacement, Section
from worship_chords.music.chords import transpose_chord_symbol
from worship_chords.music.keys import (
    key_for_offset,
    normalize_key,
    parse_key,
    prefers_flats,
    semitone_distance,
)

logger = get_logger(__name__)

# A token that reads as a chord and nothing else
CHORD_TOKEN_RE = re.compile(
    r"^[A-G][#b]?"
    r"(?:maj|min|dim|aug|sus|add|m|M|[0-9]|[#b+°ø()-])*"
    r"(?:/[A-G][#b]?)?$"
)

# Tokens allowed on a chord line besides chords
ANNOTATION_RE = re.compile(r"^(?:\|{1,2}|/|-|%|:|N\.?C\.?|\(?x\d+\)?|\d+x)$", re.IGNORECASE)

SECTION_HEADER_RE = re.compile(r"^\s*\[([^\]]+)\]\s*$")
INLINE_CHORD_RE = re.compile(r"\[([^\]\s]+)\]")
TOKEN_RE = re.compile(r"\S+")


def is_chord_token(token: str) -> bool:
    """Check whether a whitespace-free token is a chord symbol."""
    return bool(CHORD_TOKEN_RE.match(token))


def is_chord_line(line: str) -> bool:
    """Check whether a line carries only chords (and bar annotations)."""
    tokens = line.split()
    if not tokens:
        return False
    has_chord = False
    for token in tokens:
        if is_chord_token(token):
            has_chord = True
        elif not ANNOTATION_RE.match(token):
            return False
    return has_chord


def section_header(line: str) -> Optional[str]:
    """Return the section name if the line is a ``[Section]`` header."""
    match = SECTION_HEADER_RE.match(line)
    if not match or is_chord_token(match.group(1).strip()):
        return None
    return match.group(1).strip()


def _transpose_chord_line(line: str, steps: int, prefer_flats: bool) -> str:
    """Rewrite the chords of a chord line, keeping each at its column.

    A chord that grew longer pushes the next one right only when they
    would otherwise touch.
    """
    body = line.rstrip("\r")
    ending = line[len(body):]
    out = ""
    for match in TOKEN_RE.finditer(body):
        token = match.group(0)
        if is_chord_token(token):
            token = transpose_chord_symbol(token, steps, prefer_flats)
        column = match.start()
        if out and column <= len(out):
            column = len(out) + 1
        out = out.ljust(column) + token
    return out + ending


def _transpose_inline(line: str, steps: int, prefer_flats: bool) -> str:
    def repl(match: "re.Match[str]") -> str:
        token = match.group(1)
        if not is_chord_token(token):
            return match.group(0)
        return f"[{transpose_chord_symbol(token, steps, prefer_flats)}]"

    return INLINE_CHORD_RE.sub(repl, line)


def transpose_text(text: str, steps: int, prefer_flats: bool = False) -> str:
    """Transpose every chord in chord-over-lyrics text.

    Lyric lines, section headers and blank lines are kept verbatim except
    for chords written inline in brackets.

    Args:
        text: Chord-over-lyrics text
        steps: Signed semitone offset
        prefer_flats: Spell altered notes with flats instead of sharps

    Returns:
        Transposed text
    """
    if not text or steps % 12 == 0:
        return text

    lines = []
    for line in text.split("\n"):
        if section_header(line) is not None:
            lines.append(line)
        elif is_chord_line(line):
            lines.append(_transpose_chord_line(line, steps, prefer_flats))
        else:
            lines.append(_transpose_inline(line, steps, prefer_flats))
    return "\n".join(lines)


def target_key_for(original_key: str, steps: Optional[int] = None, key: Optional[str] = None) -> str:
    """Work out the key to transpose into.

    An explicit key name wins over a semitone offset. With neither, the
    original key is returned.

    Args:
        original_key: Key the song is written in
        steps: Semitone offset chosen in the key picker
        key: Target key name chosen in the key picker

    Returns:
        Target key name

    Raises:
        InvalidKey: If the chosen key or the original key is not recognized
    """
    if key:
        parse_key(key)
        return normalize_key(key)
    if steps:
        return key_for_offset(original_key, steps)
    return normalize_key(original_key)


def transpose_lyrics_text(text: str, original_key: str, target_key: str) -> str:
    """Transpose chord-over-lyrics text from its original key to a target key.

    Chords are spelled the way the target key is written. When either key
    is not recognized the text is returned untransposed.
    """
    steps = semitone_distance(original_key, target_key)
    if steps == 0:
        return text
    logger.debug(f"Transposing lyrics text {original_key} -> {target_key} ({steps:+d})")
    return transpose_text(text, steps, prefer_flats=prefers_flats(target_key))


def parse_chord_sheet(text: str, default_section: str = "Song") -> ChordChart:
    """Build a structured chart from chord-over-lyrics text.

    A chord line is paired with the lyric line right below it; chord
    columns become placement positions. Inline bracket chords are lifted
    out of the lyric and placed where they stood.

    Args:
        text: Chord-over-lyrics text
        default_section: Name for lines that appear before any header

    Returns:
        ChordChart with one section per header
    """
    sections: List[Section] = []
    current_name: Optional[str] = None
    current_lines: List[ChordLine] = []
    pending: Optional[List[ChordPlacement]] = None

    def flush_pending() -> None:
        nonlocal pending
        if pending is not None:
            current_lines.append(ChordLine(lyrics="", chords=pending))
            pending = None

    def close_section() -> None:
        nonlocal current_lines
        flush_pending()
        if current_lines or current_name is not None:
            sections.append(Section(name=current_name or default_section, lines=current_lines))
        current_lines = []

    for line in (text or "").splitlines():
        header = section_header(line)
        if header is not None:
            close_section()
            current_name = header
            continue

        if is_chord_line(line):
            flush_pending()
            pending = [
                ChordPlacement(chord=m.group(0), position=m.start())
                for m in TOKEN_RE.finditer(line)
                if is_chord_token(m.group(0))
            ]
            continue

        if not line.strip():
            flush_pending()
            continue

        lyrics, inline = _lift_inline_chords(line.rstrip())
        chords = (pending or []) + inline
        pending = None
        current_lines.append(
            ChordLine(lyrics=lyrics, chords=sorted(chords, key=lambda c: c.position))
        )

    close_section()
    return ChordChart(sections=sections)


def _lift_inline_chords(line: str):
    lyrics = ""
    placements = []
    last = 0
    for match in INLINE_CHORD_RE.finditer(line):
        if not is_chord_token(match.group(1)):
            continue
        lyrics += line[last:match.start()]
        placements.append(ChordPlacement(chord=match.group(1), position=len(lyrics)))
        last = match.end()
    lyrics += line[last:]
    return lyrics, placements


def render_chord_sheet(chart: ChordChart) -> str:
    """Render a structured chart back to chord-over-lyrics text."""
    blocks = []
    for section in chart.sections:
        lines = [f"[{section.name}]"]
        for chord_line in section.lines:
            if chord_line.chords:
                row = ""
                for placement in chord_line.chords:
                    if placement.chord is None:
                        continue
                    column = placement.position if isinstance(placement.position, int) else 0
                    if row and column <= len(row):
                        column = len(row) + 1
                    row = row.ljust(column) + str(placement.chord)
                lines.append(row)
            if chord_line.lyrics:
                lines.append(chord_line.lyrics)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
