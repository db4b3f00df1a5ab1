"""
Timing and state tests for SearchOrchestrator.

Delays are scaled down (search 50 ms, log 200 ms) so the debounce behavior can be
exercised in real time.
"""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from portal_search.client import ListingGateway, SearchApiClient, SearchOrchestrator, SearchState
from portal_search.schemas import SearchResponse, SearchResult
from portal_search.services.search import SearchError, SearchErrorKind

SEARCH_DELAY = 0.05
LOG_DELAY = 0.2


class FakeSearchBackend:
    def __init__(self, results=None, error=None):
        self.results = results if results is not None else [SearchResult(id="doc-1", similarity=0.9)]
        self.error = error
        self.requests = []
        self.times = []
        self.gate: asyncio.Event | None = None

    async def search(self, request):
        self.requests.append(request)
        self.times.append(asyncio.get_running_loop().time())
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error
        return SearchResponse(
            query=request.query,
            result_count=len(self.results),
            searched_at=datetime.now(timezone.utc),
            results=self.results,
            sort_by=request.sort_by,
        )


class FakeListingBackend:
    def __init__(self):
        self.calls = []

    async def list(self, filters, limit):
        self.calls.append((filters, limit))
        return [SearchResult(id="doc-listed", similarity=1.0)]


@pytest.fixture
def search_backend():
    return FakeSearchBackend()


@pytest.fixture
def listing_backend():
    return FakeListingBackend()


def make_orchestrator(search_backend, listing_backend, **kwargs) -> SearchOrchestrator:
    kwargs.setdefault("search_delay", SEARCH_DELAY)
    kwargs.setdefault("log_delay", LOG_DELAY)
    return SearchOrchestrator(search_backend, listing_backend, **kwargs)


async def settle(orch: SearchOrchestrator, seconds: float) -> None:
    await asyncio.sleep(seconds)
    await orch.wait_until_settled()


@pytest.mark.asyncio
async def test_keystrokes_are_debounced(search_backend, listing_backend):
    async with make_orchestrator(search_backend, listing_backend, log_delay=10) as orch:
        loop = asyncio.get_running_loop()
        orch.set_query("s")
        await asyncio.sleep(SEARCH_DELAY * 0.6)
        orch.set_query("so")
        second = loop.time()
        await settle(orch, SEARCH_DELAY * 3)

        assert [r.query for r in search_backend.requests] == ["so"]
        assert search_backend.times[0] - second >= SEARCH_DELAY - 0.01
        assert orch.debounced_query == "so"
        assert orch.state == SearchState.SEARCHING
        assert not orch.is_loading
        assert [r.id for r in orch.results] == ["doc-1"]


@pytest.mark.asyncio
async def test_settled_query_is_logged_once(search_backend, listing_backend):
    async with make_orchestrator(search_backend, listing_backend) as orch:
        orch.set_query("solar inverter")
        await settle(orch, LOG_DELAY * 1.5)

        flags = [r.log_search for r in search_backend.requests]
        assert flags == [False, True]
        assert orch.last_logged_query == "solar inverter"
        assert not orch.should_log_next_search

        orch.update_filters({"category": "Energy"})
        await settle(orch, LOG_DELAY * 1.5)

        flags = [r.log_search for r in search_backend.requests]
        assert flags == [False, True, False]
        assert search_backend.requests[-1].filters == {"category": "Energy"}


@pytest.mark.asyncio
async def test_same_text_is_not_logged_twice(search_backend, listing_backend):
    async with make_orchestrator(search_backend, listing_backend) as orch:
        orch.set_query("solar")
        await settle(orch, LOG_DELAY * 1.5)
        orch.set_query("solar ")
        await settle(orch, LOG_DELAY * 1.5)

        assert sum(r.log_search for r in search_backend.requests) == 1


@pytest.mark.asyncio
async def test_clear_while_in_flight(search_backend, listing_backend):
    search_backend.gate = asyncio.Event()
    async with make_orchestrator(search_backend, listing_backend) as orch:
        orch.set_query("solar")
        orch.search_now()
        await asyncio.sleep(0)
        assert orch.is_loading

        orch.clear()
        assert not orch.is_loading
        assert orch.results == []
        assert orch.query == ""
        assert orch.state == SearchState.IDLE

        search_backend.gate.set()
        await settle(orch, LOG_DELAY * 1.5)

        assert orch.results == []
        assert orch.response is None
        assert len(search_backend.requests) == 1


@pytest.mark.asyncio
async def test_only_latest_response_is_applied(listing_backend):
    class SlowFirst(FakeSearchBackend):
        async def search(self, request):
            if request.query == "old":
                await asyncio.sleep(0.1)
                self.results = [SearchResult(id="stale")]
            else:
                self.results = [SearchResult(id="fresh")]
            return await super().search(request)

    backend = SlowFirst()
    async with make_orchestrator(backend, listing_backend, log_delay=10) as orch:
        orch.set_query("old")
        orch.search_now()
        await asyncio.sleep(0.01)
        orch.set_query("new")
        orch.search_now()
        await settle(orch, 0.15)

        assert [r.id for r in orch.results] == ["fresh"]


@pytest.mark.asyncio
async def test_filters_without_query_use_listing(search_backend, listing_backend):
    async with make_orchestrator(search_backend, listing_backend, initial_filters={"tagId": "t1"}, match_count=25) as orch:
        await orch.wait_until_settled()

        assert orch.state == SearchState.LISTING
        assert search_backend.requests == []
        filters, limit = listing_backend.calls[0]
        assert filters.tag_ids == ("t1",)
        assert limit == 25
        assert [r.similarity for r in orch.results] == [1.0]


@pytest.mark.asyncio
async def test_no_query_no_filters_is_idle(search_backend, listing_backend):
    async with make_orchestrator(search_backend, listing_backend) as orch:
        orch.set_query("   ")
        await settle(orch, SEARCH_DELAY * 3)

        assert orch.state == SearchState.IDLE
        assert orch.results == []
        assert search_backend.requests == []
        assert listing_backend.calls == []


@pytest.mark.asyncio
async def test_all_filter_does_not_rerun(search_backend, listing_backend):
    async with make_orchestrator(search_backend, listing_backend, initial_query="solar", log_delay=10) as orch:
        await orch.wait_until_settled()
        orch.update_filters({"category": "all"})
        await orch.wait_until_settled()

        assert len(search_backend.requests) == 1


@pytest.mark.asyncio
async def test_initial_query_searches_on_start(search_backend, listing_backend):
    async with make_orchestrator(search_backend, listing_backend, initial_query="solar", log_delay=10) as orch:
        assert orch.is_loading
        await orch.wait_until_settled()

        assert [r.query for r in search_backend.requests] == ["solar"]
        assert orch.debounced_query == "solar"


@pytest.mark.asyncio
async def test_sort_change_reruns_immediately(search_backend, listing_backend):
    async with make_orchestrator(search_backend, listing_backend, initial_query="solar", log_delay=10) as orch:
        await orch.wait_until_settled()
        orch.set_sort_by("title")
        orch.set_match_threshold(0.7)
        await orch.wait_until_settled()

        assert [(r.sort_by, r.match_threshold) for r in search_backend.requests[1:]] == [("title", 0.5), ("title", 0.7)]


@pytest.mark.asyncio
async def test_backend_error_sets_error_state(listing_backend):
    backend = FakeSearchBackend(error=SearchError(SearchErrorKind.VECTOR_SEARCH_FAILURE, "rpc timeout"))
    async with make_orchestrator(backend, listing_backend, initial_query="solar", log_delay=10) as orch:
        await orch.wait_until_settled()

        assert orch.state == SearchState.ERROR
        assert orch.error.message == "Search failed. Please try again."
        assert orch.results == []
        assert not orch.is_loading


@pytest.mark.asyncio
async def test_close_cancels_timers(search_backend, listing_backend):
    orch = make_orchestrator(search_backend, listing_backend)
    await orch.start()
    orch.set_query("solar")
    await orch.close()
    await asyncio.sleep(LOG_DELAY * 1.5)

    assert search_backend.requests == []


@pytest.mark.asyncio
async def test_callbacks(search_backend, listing_backend):
    seen = []
    async with make_orchestrator(
        search_backend, listing_backend, initial_query="solar", log_delay=10, on_results=seen.append
    ) as orch:
        await orch.wait_until_settled()
    assert [[r.id for r in batch] for batch in seen] == [["doc-1"]]


@pytest.mark.asyncio
async def test_end_to_end_through_api(app, auth_headers, embedder):
    http = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
        headers=auth_headers,
    )
    async with SearchApiClient(client=http) as api:
        async with make_orchestrator(api, ListingGateway(api), log_delay=10) as orch:
            orch.set_filters({"category": "Energy"})
            orch.set_match_threshold(0.5)
            orch.set_query("solar inverter")
            await settle(orch, SEARCH_DELAY * 3)

            assert orch.state == SearchState.SEARCHING
            assert [r.id for r in orch.results] == ["doc-energy-1", "doc-energy-2"]
            assert all(r.category_name == "Energy" for r in orch.results)

            orch.clear()
            orch.set_filters({"tagId": "t1"})
            await orch.wait_until_settled()

            assert orch.state == SearchState.LISTING
            assert {r.id for r in orch.results} == {"doc-energy-1", "doc-finance-1"}
            assert all(r.similarity == 1.0 for r in orch.results)
    await http.aclose()
    assert embedder.calls == [["solar inverter"]]


@pytest.mark.asyncio
async def test_failed_search_is_not_rerun_by_log_timer(listing_backend):
    backend = FakeSearchBackend(error=SearchError(SearchErrorKind.EMBEDDING_FAILURE, "embedding API down"))
    async with make_orchestrator(backend, listing_backend) as orch:
        orch.set_query("solar")
        await settle(orch, LOG_DELAY * 1.5)

        assert [(r.query, r.log_search) for r in backend.requests] == [("solar", False)]
        assert orch.state == SearchState.ERROR
        assert orch.should_log_next_search

        # Manual retry carries the pending log flag
        backend.error = None
        orch.search_now()
        await orch.wait_until_settled()

        assert [(r.query, r.log_search) for r in backend.requests] == [("solar", False), ("solar", True)]
        assert not orch.should_log_next_search
        assert orch.state == SearchState.SEARCHING


@pytest.mark.asyncio
async def test_pending_log_flag_does_not_follow_new_text(listing_backend):
    backend = FakeSearchBackend(error=SearchError(SearchErrorKind.EMBEDDING_FAILURE, "embedding API down"))
    async with make_orchestrator(backend, listing_backend) as orch:
        orch.set_query("solar")
        await settle(orch, LOG_DELAY * 1.5)
        assert orch.should_log_next_search

        backend.error = None
        orch.set_query("wind")
        await settle(orch, SEARCH_DELAY * 3)

        assert backend.requests[-1].query == "wind"
        assert backend.requests[-1].log_search is False
