from typing import Any

from .errors import QueryValidationError


def validate_query(query: Any) -> str:
    """Return the trimmed query or raise QueryValidationError."""
    if not isinstance(query, str):
        raise QueryValidationError(QueryValidationError.INVALID_TYPE, "Query must be a string")
    trimmed = query.strip()
    if not trimmed:
        raise QueryValidationError(QueryValidationError.EMPTY_QUERY, "Search query cannot be empty")
    return trimmed
