"""Error kinds for the search pipeline and its client."""

from enum import Enum
from typing import Optional


class SearchErrorKind(str, Enum):
    """Internal error classification; used for diagnostics, never for UI branching."""
    INVALID_QUERY = "invalid_query"
    EMBEDDING_FAILURE = "embedding_failure"
    VECTOR_SEARCH_FAILURE = "vector_search_failure"
    DOCUMENT_RESOLUTION_FAILURE = "document_resolution_failure"
    LISTING_FAILURE = "listing_failure"
    LOGGING_FAILURE = "logging_failure"
    TIMEOUT = "timeout"
    REQUEST_FAILURE = "request_failure"


_USER_MESSAGES = {
    SearchErrorKind.EMBEDDING_FAILURE: "Failed to generate search embeddings",
    SearchErrorKind.VECTOR_SEARCH_FAILURE: "Search failed. Please try again.",
    SearchErrorKind.DOCUMENT_RESOLUTION_FAILURE: "Search failed. Please try again.",
    SearchErrorKind.LISTING_FAILURE: "Failed to load documents. Please try again.",
    SearchErrorKind.TIMEOUT: "Search timed out. Please try again.",
    SearchErrorKind.REQUEST_FAILURE: "Search failed. Please try again.",
}


class SearchError(Exception):
    """Search failure with its kind and originating cause."""

    def __init__(self, kind: SearchErrorKind, message: str, cause: Optional[Exception] = None):
        self.kind = kind
        self.message = message
        self.cause = cause
        super().__init__(f"[{kind.value}] {message}")

    @property
    def user_message(self) -> str:
        """Message safe to show to the user."""
        if self.kind == SearchErrorKind.INVALID_QUERY:
            return self.message
        return _USER_MESSAGES.get(self.kind, "Search failed. Please try again.")


class QueryValidationError(SearchError):
    """Raised by the query validator; `reason` is `InvalidType`, `EmptyQuery` or `InvalidSort`."""

    INVALID_TYPE = "InvalidType"
    EMPTY_QUERY = "EmptyQuery"
    INVALID_SORT = "InvalidSort"

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(SearchErrorKind.INVALID_QUERY, message)
