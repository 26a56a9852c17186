"""
String helpers for search terms, LIKE patterns and download filenames.
"""

import unicodedata


def is_blank(value: str | None) -> bool:
    """True for None, empty or whitespace-only strings."""
    return value is None or not value.strip()


def normalize_search(value: str | None) -> str | None:
    """Blank search terms become None, anything else is stripped."""
    return None if is_blank(value) else value.strip()


def to_ascii(value: str) -> str:
    """
    Strip diacritics and drop any remaining non-ASCII characters.

    "Canción ñandú.csv" -> "Cancion nandu.csv"
    """
    decomposed = unicodedata.normalize("NFD", value)
    without_marks = "".join(c for c in decomposed if not unicodedata.combining(c))
    return without_marks.encode("ascii", "ignore").decode("ascii")


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards; a search term must match them
    literally. Use together with ``escape="\\\\"`` on the LIKE clause.
    """
    if not value:
        return value

    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value
