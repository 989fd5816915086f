"""Structured chord charts.

A chart is a list of named sections; each section holds lyric lines with
chords placed at character offsets into the lyric text. The dict form
used for storage and JSON is::

    {"sections": [{"name": ..., "lines": [{"lyrics": ..., "chords": [{"chord": ..., "position": ...}]}]}]}
"""

from dataclasses import dataclass, field, replace
from typing import Any, List, Union

from worship_chords.music.chords import transpose_chord_symbol
from worship_chords.music.keys import prefers_flats, semitone_distance


@dataclass(frozen=True)
class ChordPlacement:
    """A chord placed above a character offset of a lyric line."""

    chord: Any
    position: Any = 0

    @classmethod
    def from_dict(cls, data: dict) -> "ChordPlacement":
        """Create a placement from its dict form.

        Malformed values are kept as given: a position that is not a
        number stays raw and a non-string chord is never transposed.
        """
        position = data.get("position", 0)
        try:
            position = int(position)
        except (TypeError, ValueError):
            pass
        return cls(chord=data.get("chord", ""), position=position)

    def transpose(self, steps: int, prefer_flats: bool = False) -> "ChordPlacement":
        if not isinstance(self.chord, str):
            return self
        return replace(self, chord=transpose_chord_symbol(self.chord, steps, prefer_flats))

    def to_dict(self) -> dict:
        return {"chord": self.chord, "position": self.position}


@dataclass(frozen=True)
class ChordLine:
    """One lyric line and the chords above it."""

    lyrics: str = ""
    chords: List[ChordPlacement] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ChordLine":
        return cls(
            lyrics=data.get("lyrics", "") or "",
            chords=[ChordPlacement.from_dict(c) for c in data.get("chords", []) or []],
        )

    def to_dict(self) -> dict:
        return {"lyrics": self.lyrics, "chords": [c.to_dict() for c in self.chords]}


@dataclass(frozen=True)
class Section:
    """A named part of a song (Verse 1, Chorus, Bridge...)."""

    name: str
    lines: List[ChordLine] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Section":
        return cls(
            name=data.get("name", "") or "",
            lines=[ChordLine.from_dict(line) for line in data.get("lines", []) or []],
        )

    def to_dict(self) -> dict:
        return {"name": self.name, "lines": [line.to_dict() for line in self.lines]}


@dataclass(frozen=True)
class ChordChart:
    """A whole song as sections of chord lines."""

    sections: List[Section] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ChordChart":
        """Create a chart from its dict form.

        Args:
            data: Dictionary with a "sections" list

        Returns:
            ChordChart instance
        """
        return cls(sections=[Section.from_dict(s) for s in (data or {}).get("sections", []) or []])

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"sections": [s.to_dict() for s in self.sections]}

    def chords(self) -> List[str]:
        """All chord tokens in reading order."""
        return [
            placement.chord
            for section in self.sections
            for line in section.lines
            for placement in line.chords
        ]


ChartLike = Union[ChordChart, dict]


def transpose_chord_chart(chart: ChartLike, steps: int, prefer_flats: bool = False) -> Any:
    """Transpose every chord in a chart.

    Lyrics, section names and chord positions are kept; only chord text
    changes. The input is never modified.

    Args:
        chart: ChordChart or its dict form
        steps: Signed semitone offset
        prefer_flats: Spell altered notes with flats instead of sharps

    Returns:
        Transposed chart of the same type as the input
    """
    as_dict = isinstance(chart, dict)
    source = ChordChart.from_dict(chart) if as_dict else chart

    result = ChordChart(
        sections=[
            replace(
                section,
                lines=[
                    replace(
                        line,
                        chords=[
                            p.transpose(steps, prefer_flats) for p in line.chords
                        ],
                    )
                    for line in section.lines
                ],
            )
            for section in source.sections
        ]
    )
    return result.to_dict() if as_dict else result


def transpose_chart_to_key(chart: ChartLike, original_key: str, target_key: str) -> Any:
    """Transpose a chart from its original key into a target key.

    Chords are spelled the way the target key is written (flats for F, Bb,
    Eb, ...). Unrecognized keys leave the chart untransposed.
    """
    steps = semitone_distance(original_key, target_key)
    return transpose_chord_chart(chart, steps, prefer_flats=prefers_flats(target_key))
