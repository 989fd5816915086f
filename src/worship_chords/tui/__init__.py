"""Textual practice player."""
