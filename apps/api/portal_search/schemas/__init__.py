"""Pydantic request/response schemas."""

from portal_search.schemas.search import (
    ErrorResponse,
    ListingRequest,
    ListingResponse,
    ListingRow,
    MatchingChunk,
    NamedRef,
    SearchRequest,
    SearchResponse,
    SearchResult,
    SortMode,
)

__all__ = [
    "ErrorResponse",
    "ListingRequest",
    "ListingResponse",
    "ListingRow",
    "MatchingChunk",
    "NamedRef",
    "SearchRequest",
    "SearchResponse",
    "SearchResult",
    "SortMode",
]
