"""FastAPI web service for the worship-chords song catalog."""
