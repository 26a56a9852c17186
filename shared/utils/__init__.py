"""
Utilities module: exceptions, string helpers.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundEntityError,
    ForbiddenError,
    InvalidQueryError,
    ValidationError,
    InternalError,
)
from shared.utils.strings import (
    is_blank,
    normalize_search,
    to_ascii,
    escape_like_pattern,
)

__all__ = [
    # exceptions
    "AppException",
    "NotFoundEntityError",
    "ForbiddenError",
    "InvalidQueryError",
    "ValidationError",
    "InternalError",
    # strings
    "is_blank",
    "normalize_search",
    "to_ascii",
    "escape_like_pattern",
]
