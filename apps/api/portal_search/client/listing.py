from portal_search.schemas import ListingRequest, SearchResult
from portal_search.services.search import FilterSet, from_listing_row

from .api import SearchApiClient


class ListingGateway:
    """Filter-only browsing: no embedding call, every result ranks with similarity 1."""

    def __init__(self, api: SearchApiClient):
        self._api = api

    async def list(self, filters: FilterSet, limit: int) -> list[SearchResult]:
        request = ListingRequest(
            category_id=filters.category_id,
            subcategory_id=filters.subcategory_id,
            filters=filters.as_dict(),
            limit=limit,
        )
        rows = await self._api.list_documents(request)
        return [from_listing_row(row) for row in rows]
