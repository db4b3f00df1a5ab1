"""HTTP client for the search and listing endpoints."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from portal_search.core import Settings, get_settings
from portal_search.schemas import ListingRequest, SearchRequest, SearchResponse
from portal_search.services.search import SearchError, SearchErrorKind, normalize_result

logger = logging.getLogger(__name__)


class SearchApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        s = settings or get_settings()
        self._token = token or s.api_token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or s.api_base_url,
            timeout=timeout or s.client_request_timeout_seconds,
        )

    async def __aenter__(self) -> "SearchApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def search(self, request: SearchRequest) -> SearchResponse:
        data = await self._post(
            "/search",
            request.model_dump(exclude_none=True),
            SearchErrorKind.REQUEST_FAILURE,
        )
        if not data.get("success"):
            raise SearchError(SearchErrorKind.REQUEST_FAILURE, data.get("error") or "Search was unsuccessful")

        raw_results = data.get("results")
        if isinstance(raw_results, dict):
            raw_results = [raw_results]
        elif not isinstance(raw_results, list):
            raw_results = []
        results = [normalize_result(r) for r in raw_results]
        return SearchResponse(
            query=data.get("query") or str(request.query or ""),
            result_count=data.get("result_count", len(results)),
            searched_at=data.get("searched_at") or datetime.now(timezone.utc),
            filters_used=data.get("filters_used") or {},
            sort_by=data.get("sort_by") or request.sort_by,
            results=results,
        )

    async def list_documents(self, request: ListingRequest) -> list[dict[str, Any]]:
        """Raw listing rows; callers normalize them."""
        data = await self._post(
            "/documents/list",
            request.model_dump(exclude_none=True),
            SearchErrorKind.LISTING_FAILURE,
        )
        if not data.get("success"):
            raise SearchError(SearchErrorKind.LISTING_FAILURE, data.get("error") or "Failed to fetch documents")
        return list(data.get("data") or [])

    async def _post(self, path: str, payload: dict[str, Any], failure_kind: SearchErrorKind) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            r = await self._client.post(path, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise SearchError(SearchErrorKind.TIMEOUT, f"POST {path} timed out", e) from e
        except httpx.RequestError as e:
            raise SearchError(failure_kind, f"POST {path} failed: {e}", e) from e

        try:
            data = r.json()
        except ValueError as e:
            raise SearchError(failure_kind, f"POST {path} returned {r.status_code} with a non-JSON body", e) from e

        if r.status_code >= 400:
            message = data.get("error") if isinstance(data, dict) else None
            kind = SearchErrorKind.INVALID_QUERY if r.status_code == 400 else failure_kind
            raise SearchError(kind, message or f"POST {path} returned {r.status_code}")
        if not isinstance(data, dict):
            raise SearchError(failure_kind, f"POST {path} returned an unexpected body")
        return data
