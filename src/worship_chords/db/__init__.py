"""SQLite persistence for users, songs and their ratings, favorites and comments."""
