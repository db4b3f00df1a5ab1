"""Backend collaborators of the search pipeline: vector store, document records, log sink."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from portal_search.core import DEFAULT_EMBEDDING_STATUS

from .filters import FilterSet


@dataclass(frozen=True)
class ChunkMatch:
    """One passage returned by the vector similarity search."""
    document_id: str
    chunk_index: int
    content: str
    similarity: float


@dataclass(frozen=True)
class TagRef:
    id: str
    name: Optional[str] = None


@dataclass
class DocumentRecord:
    """Resolved document with the attributes the post-filters need."""
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    content_preview: Optional[str] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    subcategory_id: Optional[str] = None
    subcategory_name: Optional[str] = None
    role_type: Optional[str] = None
    visibility: list[dict[str, Any]] = field(default_factory=list)
    tags: list[TagRef] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    embedding_status: Optional[str] = None

    @property
    def tag_ids(self) -> list[str]:
        return [t.id for t in self.tags]

    @property
    def tag_names(self) -> list[str]:
        return [t.name for t in self.tags if t.name]

    @classmethod
    def placeholder(cls, document_id: str) -> "DocumentRecord":
        """Minimal record for a match whose document could not be resolved."""
        return cls(
            id=document_id,
            title=f"Document {document_id[:8]}",
            embedding_status=DEFAULT_EMBEDDING_STATUS,
        )


@dataclass(frozen=True)
class SearchLogEntry:
    user_id: str
    query: str
    filters: dict[str, Any]
    result_count: int


class DocumentStore(ABC):
    @abstractmethod
    async def match_chunks(self, embedding: list[float], threshold: float, count: int) -> list[ChunkMatch]:
        """Vector similarity search over document chunks. No attribute filtering."""

    @abstractmethod
    async def fetch_documents(self, document_ids: list[str]) -> list[DocumentRecord]:
        """Resolve full records; ids that cannot be resolved are simply absent."""

    @abstractmethod
    async def list_documents(self, filters: FilterSet, limit: int) -> list[DocumentRecord]:
        """Attribute-only listing, most recently updated first."""


class SearchLogSink(ABC):
    @abstractmethod
    async def record_search(self, entry: SearchLogEntry) -> None:
        pass
