"""Command-line interface for worship-chords."""
