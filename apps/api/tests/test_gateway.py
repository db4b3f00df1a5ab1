"""SearchGateway pipeline against in-memory collaborators."""

import asyncio

import pytest

from conftest import FakeDocumentStore, FakeEmbeddingProvider, RecordingLogSink
from portal_search.core import Settings
from portal_search.providers import EmbeddingServiceError, EmbeddingTimeoutError
from portal_search.services.search import (
    ActivityLogger,
    ChunkMatch,
    QueryValidationError,
    SearchError,
    SearchErrorKind,
    SearchGateway,
)


@pytest.fixture
def gateway(embedder, store, activity_logger, settings):
    return SearchGateway(embedder, store, activity_logger, settings)


@pytest.mark.asyncio
async def test_category_filtered_search(gateway, store):
    resp = await gateway.search("solar inverter", {"category": "Energy"}, match_threshold=0.5)

    assert [r.id for r in resp.results] == ["doc-energy-1", "doc-energy-2"]
    assert [r.similarity for r in resp.results] == [0.91, 0.74]
    assert all(r.category_name == "Energy" for r in resp.results)
    assert resp.query == "solar inverter"
    assert resp.result_count == 2
    assert resp.filters_used == {"category": "Energy"}
    assert resp.sort_by == "similarity"
    # Attribute filters never reach the vector search
    _, threshold, count = store.match_calls[0]
    assert (threshold, count) == (0.5, 10)


@pytest.mark.asyncio
async def test_passages_are_grouped_per_document(gateway):
    resp = await gateway.search("inverter", match_threshold=0.5)

    first = resp.results[0]
    assert first.id == "doc-energy-1"
    assert [c.chunk_index for c in first.matching_chunks] == [0, 1]
    assert first.highlight.endswith("...")
    assert len(first.highlight) == 303
    assert [r.id for r in resp.results] == ["doc-energy-1", "doc-finance-1", "doc-energy-2"]


@pytest.mark.asyncio
async def test_sort_modes(gateway):
    by_title = await gateway.search("inverter", sort_by="title")
    assert [r.title for r in by_title.results] == [
        "grid storage overview",
        "Quarterly Budget",
        "Solar Inverter Maintenance",
    ]
    by_date = await gateway.search("inverter", sort_by="created_at")
    assert [r.id for r in by_date.results] == ["doc-energy-2", "doc-energy-1", "doc-finance-1"]


@pytest.mark.asyncio
async def test_query_is_trimmed_and_embedding_padded(gateway, embedder, store):
    await gateway.search("  solar  ")

    assert embedder.calls == [["solar"]]
    embedding, _, _ = store.match_calls[0]
    assert len(embedding) == embedder.dimension
    assert embedding[3:] == [0.0] * (embedder.dimension - 3)


@pytest.mark.asyncio
async def test_invalid_query_makes_no_backend_call(gateway, embedder, store, log_sink, activity_logger):
    with pytest.raises(QueryValidationError):
        await gateway.search("   ", user_id="user-1")
    with pytest.raises(QueryValidationError):
        await gateway.search(42, user_id="user-1")
    await activity_logger.drain()

    assert embedder.calls == []
    assert store.match_calls == []
    assert log_sink.entries == []


@pytest.mark.asyncio
async def test_unresolved_document_gets_placeholder(embedder, activity_logger, settings):
    store = FakeDocumentStore(chunks=[ChunkMatch("abcdef1234567890", 0, "orphan passage", 0.8)], records=[])
    gateway = SearchGateway(embedder, store, activity_logger, settings)

    resp = await gateway.search("orphan")

    assert len(resp.results) == 1
    assert resp.results[0].id == "abcdef1234567890"
    assert resp.results[0].title == "Document abcdef12"
    assert resp.results[0].embedding_status == "complete"


@pytest.mark.asyncio
async def test_zero_matches_still_logged(embedder, activity_logger, log_sink, settings):
    gateway = SearchGateway(embedder, FakeDocumentStore(), activity_logger, settings)

    resp = await gateway.search("nothing here", {"category": "Energy"}, user_id="user-1")
    await activity_logger.drain()

    assert resp.results == []
    assert resp.result_count == 0
    assert len(log_sink.entries) == 1
    entry = log_sink.entries[0]
    assert entry.query == "nothing here"
    assert entry.filters == {"category": "Energy"}
    assert entry.result_count == 0


@pytest.mark.asyncio
async def test_log_flag_off_skips_logging(gateway, activity_logger, log_sink):
    await gateway.search("solar", log_search=False, user_id="user-1")
    await activity_logger.drain()
    assert log_sink.entries == []


@pytest.mark.asyncio
async def test_logging_failure_does_not_affect_results(embedder, store, settings):
    sink = RecordingLogSink(error=RuntimeError("table missing"))
    activity_logger = ActivityLogger(sink)
    gateway = SearchGateway(embedder, store, activity_logger, settings)

    resp = await gateway.search("solar", user_id="user-1")
    await activity_logger.drain()

    assert resp.result_count == 3
    assert sink.attempts == 1
    assert not activity_logger.enabled


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, kind",
    [
        (EmbeddingServiceError("Embedding API returned 500."), SearchErrorKind.EMBEDDING_FAILURE),
        (EmbeddingTimeoutError("Embedding service did not respond within 15s."), SearchErrorKind.TIMEOUT),
        (RuntimeError("Embedding model not configured."), SearchErrorKind.EMBEDDING_FAILURE),
    ],
)
async def test_embedding_errors(store, activity_logger, settings, error, kind):
    gateway = SearchGateway(FakeEmbeddingProvider(error=error), store, activity_logger, settings)

    with pytest.raises(SearchError) as exc:
        await gateway.search("solar")

    assert exc.value.kind == kind
    assert exc.value.cause is error
    assert store.match_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "op, kind",
    [
        ("match_chunks", SearchErrorKind.VECTOR_SEARCH_FAILURE),
        ("fetch_documents", SearchErrorKind.DOCUMENT_RESOLUTION_FAILURE),
    ],
)
async def test_backend_errors(embedder, chunks, records, activity_logger, settings, op, kind):
    store = FakeDocumentStore(chunks=chunks, records=records, fail={op: RuntimeError("connection reset")})
    gateway = SearchGateway(embedder, store, activity_logger, settings)

    with pytest.raises(SearchError) as exc:
        await gateway.search("solar")

    assert exc.value.kind == kind
    assert "connection reset" in exc.value.message
    assert exc.value.user_message == "Search failed. Please try again."


@pytest.mark.asyncio
async def test_failed_search_is_logged_with_error_message(embedder, log_sink, activity_logger, settings):
    store = FakeDocumentStore(fail={"match_chunks": RuntimeError("boom")})
    gateway = SearchGateway(embedder, store, activity_logger, settings)

    with pytest.raises(SearchError):
        await gateway.search("solar", user_id="user-1")
    await activity_logger.drain()

    assert len(log_sink.entries) == 1
    assert log_sink.entries[0].result_count == 0
    assert "boom" in log_sink.entries[0].filters["error_message"]


@pytest.mark.asyncio
async def test_slow_backend_times_out(embedder, chunks, records, activity_logger):
    store = FakeDocumentStore(chunks=chunks, records=records, delay=0.5)
    gateway = SearchGateway(embedder, store, activity_logger, Settings(search_backend_timeout_seconds=0.05))

    with pytest.raises(SearchError) as exc:
        await gateway.search("solar")

    assert exc.value.kind == SearchErrorKind.TIMEOUT
    assert isinstance(exc.value.cause, asyncio.TimeoutError)


@pytest.mark.asyncio
async def test_defaults_come_from_settings(embedder, store):
    gateway = SearchGateway(
        embedder, store, None, Settings(search_default_match_threshold=0.8, search_default_match_count=1)
    )

    resp = await gateway.search("solar")

    assert [r.id for r in resp.results] == ["doc-energy-1"]
    _, threshold, count = store.match_calls[0]
    assert (threshold, count) == (0.8, 1)


@pytest.mark.asyncio
async def test_unknown_sort_mode_is_rejected_up_front(gateway, embedder, store):
    with pytest.raises(QueryValidationError) as exc:
        await gateway.search("solar", sort_by="relevance")

    assert exc.value.reason == QueryValidationError.INVALID_SORT
    assert exc.value.kind == SearchErrorKind.INVALID_QUERY
    assert embedder.calls == []
    assert store.match_calls == []
