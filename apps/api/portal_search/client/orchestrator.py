"""Debounced search session.

Owns query/filter/sort state for one search UI and decides, after each change, whether
to run a semantic search, a filter-only listing, or clear. Two independent timers run
over the query: a short one that triggers the search and a long one that decides
whether the settled query gets logged. Every dispatch carries a token; responses whose
token is no longer current are dropped.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol

from portal_search.core import SORT_SIMILARITY, Settings, get_settings
from portal_search.schemas import SearchRequest, SearchResponse, SearchResult
from portal_search.services.search import FilterSet, SearchError

logger = logging.getLogger(__name__)


class SearchState(str, Enum):
    IDLE = "idle"
    LISTING = "listing"
    SEARCHING = "searching"
    ERROR = "error"


@dataclass(frozen=True)
class SearchErrorView:
    """What the UI gets to see of a failure."""
    message: str


class SearchBackend(Protocol):
    async def search(self, request: SearchRequest) -> SearchResponse: ...


class ListingBackend(Protocol):
    async def list(self, filters: FilterSet, limit: int) -> list[SearchResult]: ...


_GENERIC_FAILURE = "Search failed. Please try again."


class SearchOrchestrator:
    def __init__(
        self,
        search_backend: SearchBackend,
        listing_backend: ListingBackend,
        *,
        initial_query: str = "",
        initial_filters: Optional[Mapping[str, Any]] = None,
        match_threshold: Optional[float] = None,
        match_count: Optional[int] = None,
        sort_by: str = SORT_SIMILARITY,
        search_delay: Optional[float] = None,
        log_delay: Optional[float] = None,
        on_results: Optional[Callable[[list[SearchResult]], None]] = None,
        on_change: Optional[Callable[["SearchOrchestrator"], None]] = None,
        settings: Optional[Settings] = None,
    ):
        s = settings or get_settings()
        self._search_backend = search_backend
        self._listing_backend = listing_backend
        self._search_delay = s.search_debounce_ms / 1000 if search_delay is None else search_delay
        self._log_delay = s.log_debounce_ms / 1000 if log_delay is None else log_delay
        self._on_results = on_results
        self._on_change = on_change

        self.query = initial_query or ""
        self.debounced_query = self.query
        self.filters: dict[str, Any] = dict(initial_filters or {})
        self.match_threshold = s.search_default_match_threshold if match_threshold is None else match_threshold
        self.match_count = s.search_default_match_count if match_count is None else match_count
        self.sort_by = sort_by

        self.state = SearchState.IDLE
        self.results: list[SearchResult] = []
        self.response: Optional[SearchResponse] = None
        self.is_loading = False
        self.error: Optional[SearchErrorView] = None
        self.last_logged_query = ""
        self.should_log_next_search = False

        self._filter_set = FilterSet.from_mapping(self.filters)
        self._search_timer: Optional[asyncio.TimerHandle] = None
        self._log_timer: Optional[asyncio.TimerHandle] = None
        self._token = 0
        self._tasks: set[asyncio.Task] = set()
        self._started = False

    async def __aenter__(self) -> "SearchOrchestrator":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Mount: an initial query searches right away, initial filters list right away."""
        self._started = True
        if self.query.strip():
            self._restart_log_timer()
        self._evaluate()

    async def close(self) -> None:
        """Unmount: cancel timers and abandon in-flight requests."""
        self._cancel_timers()
        self._token += 1
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.is_loading = False
        self._started = False

    async def wait_until_settled(self) -> None:
        """Wait for dispatched requests (not timers) to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- inputs --------------------------------------------------------------

    def set_query(self, query: str) -> None:
        self.query = query
        self._restart_search_timer()
        self._restart_log_timer()
        self._notify()

    def search_now(self) -> None:
        """Submit: skip the typing debounce."""
        self._cancel(self._search_timer)
        self._search_timer = None
        self.debounced_query = self.query
        self._evaluate()

    def set_filters(self, filters: Optional[Mapping[str, Any]]) -> None:
        self.filters = dict(filters or {})
        new_set = FilterSet.from_mapping(self.filters)
        if new_set == self._filter_set:
            return
        self._filter_set = new_set
        self._evaluate()

    def update_filters(self, updates: Mapping[str, Any]) -> None:
        self.set_filters({**self.filters, **updates})

    def set_sort_by(self, sort_by: str) -> None:
        if sort_by != self.sort_by:
            self.sort_by = sort_by
            self._evaluate()

    def set_match_threshold(self, match_threshold: float) -> None:
        if match_threshold != self.match_threshold:
            self.match_threshold = match_threshold
            self._evaluate()

    def set_match_count(self, match_count: int) -> None:
        if match_count != self.match_count:
            self.match_count = match_count
            self._evaluate()

    def clear(self) -> None:
        """Reset the search immediately, bypassing both timers."""
        self._cancel_timers()
        self._token += 1
        self.query = ""
        self.debounced_query = ""
        self.results = []
        self.response = None
        self.error = None
        self.is_loading = False
        self.last_logged_query = ""
        self.should_log_next_search = False
        self.state = SearchState.IDLE
        self._notify()

    @property
    def filters_active(self) -> bool:
        return self._filter_set.is_active

    # -- timers --------------------------------------------------------------

    def _restart_search_timer(self) -> None:
        self._cancel(self._search_timer)
        self._search_timer = asyncio.get_running_loop().call_later(self._search_delay, self._on_search_timer)

    def _restart_log_timer(self) -> None:
        self._cancel(self._log_timer)
        self._log_timer = asyncio.get_running_loop().call_later(self._log_delay, self._on_log_timer)

    def _cancel_timers(self) -> None:
        self._cancel(self._search_timer)
        self._cancel(self._log_timer)
        self._search_timer = None
        self._log_timer = None

    @staticmethod
    def _cancel(handle: Optional[asyncio.TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    def _on_search_timer(self) -> None:
        self._search_timer = None
        self.debounced_query = self.query
        self._evaluate()

    def _on_log_timer(self) -> None:
        self._log_timer = None
        settled = self.debounced_query.strip()
        if settled and settled != self.last_logged_query:
            self.should_log_next_search = True
            self.last_logged_query = settled
            if self.state == SearchState.ERROR:
                # Left for the next manual retry; failed searches are not re-run
                return
            # Re-run so the flag is consumed by a search request
            self._evaluate()
        else:
            self.should_log_next_search = False

    # -- dispatch ------------------------------------------------------------

    def _evaluate(self) -> None:
        if not self._started:
            return
        text = self.debounced_query.strip()
        if text:
            # A pending flag only applies to the text it was raised for
            log_search = self.should_log_next_search and text == self.last_logged_query
            self.should_log_next_search = False
            request = SearchRequest(
                query=text,
                filters=dict(self.filters),
                match_threshold=self.match_threshold,
                match_count=self.match_count,
                sort_by=self.sort_by,
                log_search=log_search,
            )
            self._dispatch(SearchState.SEARCHING, lambda: self._run_search(request))
        elif self._filter_set.is_active:
            filters, limit = self._filter_set, self.match_count
            self._dispatch(SearchState.LISTING, lambda: self._run_listing(filters, limit))
        else:
            self._token += 1
            self.results = []
            self.response = None
            self.error = None
            self.is_loading = False
            self.state = SearchState.IDLE
            self._notify()

    async def _run_search(self, request: SearchRequest) -> tuple[list[SearchResult], Optional[SearchResponse]]:
        response = await self._search_backend.search(request)
        return response.results, response

    async def _run_listing(self, filters: FilterSet, limit: int) -> tuple[list[SearchResult], Optional[SearchResponse]]:
        return await self._listing_backend.list(filters, limit), None

    def _dispatch(
        self,
        state: SearchState,
        call: Callable[[], Awaitable[tuple[list[SearchResult], Optional[SearchResponse]]]],
    ) -> None:
        self._token += 1
        token = self._token
        self.state = state
        self.is_loading = True
        self.error = None
        self._notify()
        task = asyncio.get_running_loop().create_task(self._execute(token, state, call))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(self, token: int, state: SearchState, call) -> None:
        try:
            results, response = await call()
        except SearchError as e:
            if token != self._token:
                logger.debug("Ignoring failure of superseded %s request: %s", state.value, e)
                return
            logger.warning("%s request failed [%s]: %s", state.value, e.kind.value, e.message)
            self._fail(e.user_message)
            return
        except Exception as e:
            if token != self._token:
                return
            logger.exception("%s request failed: %s", state.value, e)
            self._fail(_GENERIC_FAILURE)
            return

        if token != self._token:
            logger.debug("Discarding stale %s response", state.value)
            return
        self.results = results
        self.response = response
        self.is_loading = False
        self._notify()
        if self._on_results:
            self._on_results(results)

    def _fail(self, message: str) -> None:
        self.state = SearchState.ERROR
        self.error = SearchErrorView(message=message)
        self.results = []
        self.response = None
        self.is_loading = False
        self._notify()

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self)
