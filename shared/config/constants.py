"""
Centralized constants.
"""

from typing import Final


class Limits:
    """Paging limits used when no explicit size is requested."""

    DEFAULT_PAGE_SIZE: Final[int] = 20
    MAX_PAGE_SIZE: Final[int] = 2000
    MIN_PAGE_SIZE: Final[int] = 1


class MediaTypes:
    """Media types produced by the bundled exporters."""

    OCTET_STREAM: Final[str] = "application/octet-stream"
    CSV: Final[str] = "text/csv"
    JSON: Final[str] = "application/json"


CONTENT_DISPOSITION: Final[str] = "Content-Disposition"
