"""Attribute-only document listing (no query text, no embeddings)."""

import asyncio
import logging
from typing import Optional

from portal_search.core import Settings, get_settings
from portal_search.schemas import ListingRequest, ListingResponse
from portal_search.services.search.errors import SearchError, SearchErrorKind
from portal_search.services.search.filters import FilterSet, apply_filters
from portal_search.services.search.normalizer import record_to_listing_row
from portal_search.services.search.store import DocumentStore

logger = logging.getLogger(__name__)


def listing_filters(body: ListingRequest) -> FilterSet:
    """Top-level id fields win over the same keys inside `filters`."""
    raw = dict(body.filters)
    for key in ("category_id", "subcategory_id", "tag_id"):
        value = getattr(body, key)
        if value:
            raw[key] = value
    return FilterSet.from_mapping(raw)


class ListingService:
    def __init__(self, store: DocumentStore, settings: Optional[Settings] = None):
        self._store = store
        self._settings = settings or get_settings()

    async def list_documents(self, body: ListingRequest) -> ListingResponse:
        filters = listing_filters(body)
        limit = body.limit or self._settings.listing_default_limit
        try:
            records = await asyncio.wait_for(
                self._store.list_documents(filters, limit),
                timeout=self._settings.search_backend_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise SearchError(SearchErrorKind.TIMEOUT, "Document listing timed out", e) from e
        except Exception as e:
            logger.exception("Error fetching documents: %s", e)
            raise SearchError(SearchErrorKind.LISTING_FAILURE, f"Failed to fetch documents: {e}", e) from e
        # Stores filter before the limit; this only rechecks exact matches
        records = apply_filters(records, filters)
        rows = [record_to_listing_row(r) for r in records]
        logger.info("Listing %s: %d documents", filters.as_dict(), len(rows))
        return ListingResponse(data=rows, total=len(rows))
