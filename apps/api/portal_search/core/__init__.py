"""Core configuration, auth, and shared infrastructure."""

from portal_search.core.config import Settings, get_settings
from portal_search.core.constants import (
    DEFAULT_EMBEDDING_STATUS,
    DEFAULT_TITLE,
    FILTER_ALL,
    HIGHLIGHT_LENGTH,
    LISTING_SIMILARITY,
    MAX_MATCH_COUNT,
    SORT_CREATED_AT,
    SORT_MODES,
    SORT_SIMILARITY,
    SORT_TITLE,
)
from portal_search.core.auth import create_access_token, decode_access_token
from portal_search.core.limiter import limiter

__all__ = [
    "Settings",
    "get_settings",
    "DEFAULT_EMBEDDING_STATUS",
    "DEFAULT_TITLE",
    "FILTER_ALL",
    "HIGHLIGHT_LENGTH",
    "LISTING_SIMILARITY",
    "MAX_MATCH_COUNT",
    "SORT_CREATED_AT",
    "SORT_MODES",
    "SORT_SIMILARITY",
    "SORT_TITLE",
    "create_access_token",
    "decode_access_token",
    "limiter",
]
