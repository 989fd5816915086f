"""Tests for chord-over-lyrics text handling."""

import pytest

from worship_chords.errors import InvalidKey
from worship_chords.music.chart import ChordChart, ChordLine, ChordPlacement, Section
from worship_chords.music.chord_text import (
    is_chord_line,
    is_chord_token,
    parse_chord_sheet,
    render_chord_sheet,
    section_header,
    target_key_for,
    transpose_lyrics_text,
    transpose_text,
)

SHEET = "\n".join(
    [
        "[Verse 1]",
        "G          C        G",
        "Amazing grace how sweet the sound",
        "",
        "[Chorus]",
        "My [D]chains are [Em]gone",
    ]
)


class TestLineClassification:
    """Tests for chord token and line detection."""

    @pytest.mark.parametrize("token", ["G", "Am7", "D/F#", "Bbsus4", "C#m7b5", "Gmaj7", "Cadd9", "E7(#9)"])
    def test_chord_tokens(self, token):
        assert is_chord_token(token)

    @pytest.mark.parametrize("token", ["Amazing", "A-men", "Hello", "N.C.", "[G]", "grace"])
    def test_non_chord_tokens(self, token):
        assert not is_chord_token(token)

    def test_chord_line(self):
        assert is_chord_line("G    C/E   D")
        assert is_chord_line("| G  | C  | x2")

    def test_lyric_line_is_not_a_chord_line(self):
        assert not is_chord_line("A mighty fortress")
        assert not is_chord_line("")
        assert not is_chord_line("|  |")

    def test_section_header(self):
        assert section_header("[Verse 1]") == "Verse 1"
        assert section_header("  [Chorus]  ") == "Chorus"
        assert section_header("[G]") is None
        assert section_header("Verse 1") is None


class TestTransposeText:
    """Tests for transpose_text."""

    def test_chord_lines_keep_their_columns(self):
        result = transpose_text(SHEET, 2).split("\n")
        assert result[1] == "A          D        A"
        assert result[2] == "Amazing grace how sweet the sound"

    def test_headers_are_kept(self):
        result = transpose_text(SHEET, 2).split("\n")
        assert result[0] == "[Verse 1]"
        assert result[4] == "[Chorus]"

    def test_inline_chords(self):
        assert transpose_text("My [D]chains are [Em]gone", 2) == "My [E]chains are [F#m]gone"

    def test_inline_annotations_left_alone(self):
        assert transpose_text("Sing [softly] [G]now", 2) == "Sing [softly] [A]now"

    def test_longer_chord_pushes_next_one_right(self):
        assert transpose_text("A B", 1) == "A# C"
        assert transpose_text("A B", 1, prefer_flats=True) == "Bb C"

    def test_flat_spelling(self):
        assert transpose_text("G  C  D", 1, prefer_flats=True) == "Ab Db Eb"

    def test_zero_steps_returns_text(self):
        assert transpose_text(SHEET, 0) is SHEET
        assert transpose_text("", 3) == ""

    def test_round_trip_for_sharp_spelled_text(self):
        there = transpose_text(SHEET, 5)
        assert transpose_text(there, -5) == SHEET

    def test_crlf_line_endings_are_kept(self):
        text = "[Verse 1]\r\nG    C\r\nAmazing grace\r\n"
        assert transpose_text(text, 2) == "[Verse 1]\r\nA    D\r\nAmazing grace\r\n"


class TestTargetKey:
    """Tests for target_key_for and transpose_lyrics_text."""

    def test_explicit_key_wins(self):
        assert target_key_for("G", steps=5, key="bb") == "Bb"

    def test_key_from_steps(self):
        assert target_key_for("G", steps=2) == "A"
        assert target_key_for("G", steps=-2) == "F"

    def test_no_change_returns_original(self):
        assert target_key_for(" g") == "G"
        assert target_key_for("G", steps=0) == "G"

    def test_invalid_target_raises(self):
        with pytest.raises(InvalidKey):
            target_key_for("G", key="H")

    def test_invalid_original_raises_for_steps(self):
        with pytest.raises(InvalidKey):
            target_key_for("H", steps=2)

    def test_transpose_lyrics_text_spells_for_target(self):
        assert transpose_lyrics_text("G C D", "G", "F") == "F Bb C"
        assert transpose_lyrics_text("G C D", "G", "A") == "A D E"

    def test_transpose_lyrics_text_invalid_key_is_untransposed(self):
        assert transpose_lyrics_text("G C D", "G", "nope") == "G C D"


class TestChordSheet:
    """Tests for parsing and rendering chord sheets."""

    def test_parse(self):
        chart = parse_chord_sheet(SHEET)

        assert [s.name for s in chart.sections] == ["Verse 1", "Chorus"]
        verse_line = chart.sections[0].lines[0]
        assert verse_line.lyrics == "Amazing grace how sweet the sound"
        assert verse_line.chords == [
            ChordPlacement("G", 0),
            ChordPlacement("C", 11),
            ChordPlacement("G", 20),
        ]
        chorus_line = chart.sections[1].lines[0]
        assert chorus_line.lyrics == "My chains are gone"
        assert chorus_line.chords == [ChordPlacement("D", 3), ChordPlacement("Em", 14)]

    def test_lines_before_a_header_use_default_section(self):
        chart = parse_chord_sheet("G\nHello")
        assert chart.sections[0].name == "Song"

    def test_chord_line_without_lyric(self):
        chart = parse_chord_sheet("[Intro]\nG  C  D\n\n[Verse]\nWords")
        intro = chart.sections[0]
        assert intro.lines == [
            ChordLine(lyrics="", chords=[ChordPlacement("G", 0), ChordPlacement("C", 3), ChordPlacement("D", 6)])
        ]

    def test_render(self):
        chart = ChordChart(
            sections=[
                Section(
                    name="Chorus",
                    lines=[ChordLine(lyrics="My chains are gone", chords=[ChordPlacement("D", 3)])],
                )
            ]
        )
        assert render_chord_sheet(chart) == "[Chorus]\n   D\nMy chains are gone"

    def test_render_skips_malformed_placements(self):
        chart = ChordChart.from_dict(
            {"sections": [{"name": "Intro", "lines": [{"chords": [{"chord": None}, {"chord": "G", "position": None}]}]}]}
        )
        assert render_chord_sheet(chart) == "[Intro]\nG"

    def test_parse_then_render_keeps_chord_columns(self):
        text = "[Verse 1]\nG          C        G\nAmazing grace how sweet the sound"
        assert render_chord_sheet(parse_chord_sheet(text)) == text

    def test_empty_text(self):
        assert parse_chord_sheet("").sections == []
