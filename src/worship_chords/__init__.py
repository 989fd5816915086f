"""Worship Chords - song lyrics, chord charts and transposable playback.

This package provides:
- Key and chord transposition for structured charts and chord-over-lyrics text
- A pitch-shifting playback controller kept in step with the displayed chart
- A song catalog web API with accounts, ratings, favorites and comments
- Media helpers for vocal stems, lyric lookup and AI-assisted song details
"""

__version__ = "0.3.0"
