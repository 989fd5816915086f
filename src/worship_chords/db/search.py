"""Song list query construction.

Turns the catalog's search box and filter parameters into a parameterized
WHERE / ORDER BY pair for the songs table.
"""

from dataclasses import dataclass
from typing import Optional

from worship_chords.music.keys import normalize_key

MAX_SEARCH_LENGTH = 100
DEFAULT_SORT = "-created_at"

# Accepted sort names -> SQL expressions
SORT_FIELDS = {
    "created_at": "s.created_at",
    "createdAt": "s.created_at",
    "updated_at": "s.updated_at",
    "title": "s.title COLLATE NOCASE",
    "artist": "s.artist COLLATE NOCASE",
    "view_count": "s.view_count",
    "viewCount": "s.view_count",
    "rating": "average_rating",
    "tempo": "s.tempo",
}


def sanitize_search(text: Optional[str]) -> str:
    """Clean a search string for use in a LIKE pattern.

    Trims, truncates to MAX_SEARCH_LENGTH characters and escapes the LIKE
    wildcards so user input only ever matches literally.
    """
    if not text:
        return ""
    text = text.strip()[:MAX_SEARCH_LENGTH]
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def order_by_clause(sort: Optional[str]) -> str:
    """ORDER BY expression for a sort name such as "-created_at" or "title".

    Unknown names fall back to newest first.
    """
    sort = (sort or DEFAULT_SORT).strip()
    descending = sort.startswith("-")
    name = sort.lstrip("-+")
    if name not in SORT_FIELDS:
        name, descending = DEFAULT_SORT.lstrip("-"), True
    direction = "DESC" if descending else "ASC"
    return f"{SORT_FIELDS[name]} {direction}, s.id {direction}"


@dataclass
class SongQuery:
    """Filters for listing songs.

    Attributes:
        search: Free text matched against title, artist, writer and tags
        key: Original key filter
        difficulty: Difficulty filter
        sort: Sort name, "-" prefix for descending
        page: 1-based page number
        limit: Page size
    """

    search: Optional[str] = None
    key: Optional[str] = None
    difficulty: Optional[str] = None
    sort: str = DEFAULT_SORT
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (max(1, self.page) - 1) * self.limit

    def where_clause(self) -> tuple[str, list]:
        """Build the WHERE clause and its parameters.

        Returns:
            Tuple of (clause text, possibly empty; parameter list)
        """
        conditions = []
        params: list = []

        term = sanitize_search(self.search)
        if term:
            pattern = f"%{term}%"
            conditions.append(
                "(s.title LIKE ? ESCAPE '\\' OR s.artist LIKE ? ESCAPE '\\' "
                "OR s.writer LIKE ? ESCAPE '\\' "
                "OR EXISTS (SELECT 1 FROM song_tags t WHERE t.song_id = s.id AND t.tag LIKE ? ESCAPE '\\'))"
            )
            params.extend([pattern] * 4)

        if self.key:
            conditions.append("s.original_key = ?")
            params.append(normalize_key(self.key))

        if self.difficulty:
            conditions.append("s.difficulty = ?")
            params.append(self.difficulty.strip().lower())

        if not conditions:
            return "", params
        return "WHERE " + " AND ".join(conditions), params

    def order_by(self) -> str:
        return "ORDER BY " + order_by_clause(self.sort)
