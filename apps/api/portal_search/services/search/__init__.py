"""Semantic search pipeline: validation, normalization, filtering, gateway, analytics."""

from .activity_logger import ActivityLogger
from .errors import QueryValidationError, SearchError, SearchErrorKind
from .filters import FilterSet, apply_filters, sort_results
from .gateway import SearchGateway
from .normalizer import create_highlight, from_listing_row, from_vector_matches, normalize_result
from .query_validator import validate_query
from .store import (
    ChunkMatch,
    DocumentRecord,
    DocumentStore,
    SearchLogEntry,
    SearchLogSink,
    TagRef,
)

__all__ = [
    "ActivityLogger",
    "QueryValidationError",
    "SearchError",
    "SearchErrorKind",
    "FilterSet",
    "apply_filters",
    "sort_results",
    "SearchGateway",
    "create_highlight",
    "from_listing_row",
    "from_vector_matches",
    "normalize_result",
    "validate_query",
    "ChunkMatch",
    "DocumentRecord",
    "DocumentStore",
    "SearchLogEntry",
    "SearchLogSink",
    "TagRef",
]
