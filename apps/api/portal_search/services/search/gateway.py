"""Semantic search pipeline.

Pipeline: validate query -> embed -> vector similarity (threshold/count only) ->
resolve documents (placeholders for missing ones) -> per-document best-passage scoring ->
attribute post-filters -> sort -> background activity log.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Mapping, Optional, TypeVar

from portal_search.core import SORT_MODES, SORT_SIMILARITY, Settings, get_settings
from portal_search.providers import (
    EmbeddingProvider,
    EmbeddingServiceError,
    EmbeddingTimeoutError,
)
from portal_search.schemas import SearchResponse, SearchResult
from portal_search.utils import normalize_embedding

from .activity_logger import ActivityLogger
from .errors import QueryValidationError, SearchError, SearchErrorKind
from .filters import FilterSet, apply_filters, sort_results
from .normalizer import from_vector_matches
from .query_validator import validate_query
from .store import ChunkMatch, DocumentRecord, DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _Candidate:
    record: DocumentRecord
    result: SearchResult


class SearchGateway:
    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        store: DocumentStore,
        activity_logger: Optional[ActivityLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._embedding_provider = embedding_provider
        self._store = store
        self._activity_logger = activity_logger
        self._settings = settings or get_settings()

    async def search(
        self,
        query: Any,
        filters: Optional[Mapping[str, Any]] = None,
        *,
        match_threshold: Optional[float] = None,
        match_count: Optional[int] = None,
        sort_by: str = SORT_SIMILARITY,
        log_search: bool = True,
        user_id: Optional[str] = None,
    ) -> SearchResponse:
        """Run the full pipeline. Raises QueryValidationError or SearchError."""
        sanitized = validate_query(query)
        if sort_by not in SORT_MODES:
            raise QueryValidationError(QueryValidationError.INVALID_SORT, f"Unsupported sort mode: {sort_by}")
        threshold = self._settings.search_default_match_threshold if match_threshold is None else match_threshold
        count = self._settings.search_default_match_count if match_count is None else match_count
        filters_used = dict(filters or {})
        filter_set = FilterSet.from_mapping(filters_used)
        should_log = log_search and user_id is not None and self._activity_logger is not None

        try:
            results = await self._run(sanitized, filter_set, threshold, count, sort_by)
        except SearchError as e:
            if should_log:
                self._activity_logger.log_in_background(
                    user_id, sanitized, {"error_message": e.message}, 0
                )
            raise

        if should_log:
            self._activity_logger.log_in_background(user_id, sanitized, filters_used, len(results))

        logger.info(
            "Search %r: %d results (threshold=%s count=%s sort=%s filters=%s)",
            sanitized, len(results), threshold, count, sort_by, filter_set.as_dict(),
        )
        return SearchResponse(
            query=sanitized,
            result_count=len(results),
            searched_at=datetime.now(timezone.utc),
            filters_used=filters_used,
            sort_by=sort_by,
            results=results,
        )

    async def _run(
        self,
        query: str,
        filters: FilterSet,
        threshold: float,
        count: int,
        sort_by: str,
    ) -> list[SearchResult]:
        embedding = await self._embed(query)
        matches = await self._backend_call(
            self._store.match_chunks(embedding, threshold, count),
            SearchErrorKind.VECTOR_SEARCH_FAILURE,
            "Vector search failed",
        )
        if not matches:
            return []

        chunks_by_doc: dict[str, list[ChunkMatch]] = defaultdict(list)
        for m in matches:
            chunks_by_doc[m.document_id].append(m)
        document_ids = list(chunks_by_doc)

        records = await self._backend_call(
            self._store.fetch_documents(document_ids),
            SearchErrorKind.DOCUMENT_RESOLUTION_FAILURE,
            "Document retrieval failed",
        )
        by_id = {r.id: r for r in records}
        missing = [d for d in document_ids if d not in by_id]
        if missing:
            logger.warning("No document records for %d matched ids, using placeholders", len(missing))

        candidates = []
        for doc_id in document_ids:
            record = by_id.get(doc_id) or DocumentRecord.placeholder(doc_id)
            candidates.append(
                _Candidate(record=record, result=from_vector_matches(record, chunks_by_doc[doc_id], threshold))
            )

        filtered = apply_filters(candidates, filters, record=lambda c: c.record)
        if filters.is_active:
            logger.debug("%d of %d documents remain after filters", len(filtered), len(candidates))
        return sort_results([c.result for c in filtered], sort_by)

    async def _embed(self, query: str) -> list[float]:
        try:
            vectors = await self._embedding_provider.embed([query])
        except EmbeddingTimeoutError as e:
            logger.warning("Search embedding timed out: %s", e)
            raise SearchError(SearchErrorKind.TIMEOUT, str(e), e) from e
        except (EmbeddingServiceError, RuntimeError) as e:
            logger.warning("Search embedding failed: %s", e, exc_info=True)
            raise SearchError(SearchErrorKind.EMBEDDING_FAILURE, str(e), e) from e
        if not vectors or not vectors[0]:
            raise SearchError(SearchErrorKind.EMBEDDING_FAILURE, "Embedding API returned no vector")
        return normalize_embedding(vectors[0], self._embedding_provider.dimension)

    async def _backend_call(self, call: Awaitable[T], kind: SearchErrorKind, what: str) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._settings.search_backend_timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.warning("%s: timed out", what)
            raise SearchError(SearchErrorKind.TIMEOUT, f"{what}: timed out", e) from e
        except SearchError:
            raise
        except Exception as e:
            logger.exception("%s: %s", what, e)
            raise SearchError(kind, f"{what}: {e}", e) from e
