"""Shared fakes and fixtures: in-memory embedding provider, document store and log sink."""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from portal_search.core import Settings, create_access_token, limiter
from portal_search.providers import EmbeddingProvider
from portal_search.services.search import (
    ActivityLogger,
    ChunkMatch,
    DocumentRecord,
    DocumentStore,
    FilterSet,
    SearchLogSink,
    TagRef,
    apply_filters,
)

ENERGY = "cat-energy"
FINANCE = "cat-finance"


class FakeEmbeddingProvider(EmbeddingProvider):
    def __init__(self, dimension: int = 8, error: Exception | None = None):
        self._dimension = dimension
        self.error = error
        self.calls: list[list[str]] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.error:
            raise self.error
        # Shorter than the dimension so padding is exercised
        return [[0.25, 0.5, 0.25] for _ in texts]


class FakeDocumentStore(DocumentStore):
    def __init__(
        self,
        chunks: list[ChunkMatch] | None = None,
        records: list[DocumentRecord] | None = None,
        fail: dict[str, Exception] | None = None,
        delay: float = 0.0,
    ):
        self.chunks = list(chunks or [])
        self.records = list(records or [])
        self.fail = fail or {}
        self.delay = delay
        self.match_calls: list[tuple[list[float], float, int]] = []
        self.fetch_calls: list[list[str]] = []
        self.list_calls: list[tuple[FilterSet, int]] = []

    async def _maybe_fail(self, op: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if op in self.fail:
            raise self.fail[op]

    async def match_chunks(self, embedding, threshold, count):
        self.match_calls.append((embedding, threshold, count))
        await self._maybe_fail("match_chunks")
        hits = [c for c in self.chunks if c.similarity >= threshold]
        return sorted(hits, key=lambda c: c.similarity, reverse=True)[:count]

    async def fetch_documents(self, document_ids):
        self.fetch_calls.append(list(document_ids))
        await self._maybe_fail("fetch_documents")
        return [r for r in self.records if r.id in document_ids]

    async def list_documents(self, filters, limit):
        self.list_calls.append((filters, limit))
        await self._maybe_fail("list_documents")
        # Every filter applies before the limit, as in the SQL store
        out = apply_filters(self.records, filters)
        out = sorted(out, key=lambda r: r.updated_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return out[:limit]


class RecordingLogSink(SearchLogSink):
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.entries = []
        self.attempts = 0

    async def record_search(self, entry):
        self.attempts += 1
        if self.error:
            raise self.error
        self.entries.append(entry)


def _ts(month: int) -> datetime:
    return datetime(2024, month, 1, tzinfo=timezone.utc)


@pytest.fixture
def records() -> list[DocumentRecord]:
    return [
        DocumentRecord(
            id="doc-energy-1",
            title="Solar Inverter Maintenance",
            content_preview="How to service string inverters on rooftop arrays.",
            category_id=ENERGY,
            category_name="Energy",
            tags=[TagRef("t1", "Solar")],
            created_at=_ts(3),
            updated_at=_ts(6),
            embedding_status="complete",
        ),
        DocumentRecord(
            id="doc-energy-2",
            title="grid storage overview",
            category_id=ENERGY,
            category_name="Energy",
            role_type="engineer",
            tags=[TagRef("t2", "Storage")],
            created_at=_ts(5),
            updated_at=_ts(5),
        ),
        DocumentRecord(
            id="doc-finance-1",
            title="Quarterly Budget",
            category_id=FINANCE,
            category_name="Finance",
            role_type="engineer",
            visibility=[{"roleTypes": ["manager"]}],
            tags=[TagRef("t1", "Solar")],
            created_at=_ts(1),
            updated_at=_ts(7),
        ),
    ]


@pytest.fixture
def chunks() -> list[ChunkMatch]:
    return [
        ChunkMatch("doc-energy-1", 0, "Inverter fault codes and resets. " * 20, 0.91),
        ChunkMatch("doc-energy-1", 1, "Panel cleaning schedule.", 0.62),
        ChunkMatch("doc-energy-1", 2, "Appendix.", 0.30),
        ChunkMatch("doc-energy-2", 0, "Battery storage sizing.", 0.74),
        ChunkMatch("doc-finance-1", 0, "Solar investment budget lines.", 0.88),
    ]


@pytest.fixture
def embedder() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def store(chunks, records) -> FakeDocumentStore:
    return FakeDocumentStore(chunks=chunks, records=records)


@pytest.fixture
def log_sink() -> RecordingLogSink:
    return RecordingLogSink()


@pytest.fixture
def activity_logger(log_sink) -> ActivityLogger:
    return ActivityLogger(log_sink)


@pytest.fixture
def settings() -> Settings:
    return Settings(search_backend_timeout_seconds=1.0)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


@pytest.fixture
def app(embedder, store, activity_logger):
    """FastAPI app with the database and embedding API replaced by fakes."""
    from portal_search.dependencies import get_activity_logger, get_document_store, get_embedder
    from portal_search.main import app

    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_activity_logger] = lambda: activity_logger
    was_enabled = limiter.enabled
    limiter.enabled = False
    yield app
    limiter.enabled = was_enabled
    app.dependency_overrides.clear()


@pytest.fixture
def asgi_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
