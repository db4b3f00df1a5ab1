"""Map vector-search rows, listing rows and raw API payloads onto SearchResult."""

import uuid
from typing import Any, Mapping, Union

from portal_search.core import (
    DEFAULT_EMBEDDING_STATUS,
    DEFAULT_TITLE,
    HIGHLIGHT_LENGTH,
    LISTING_SIMILARITY,
)
from portal_search.core.constants import HIGHLIGHT_ELLIPSIS
from portal_search.schemas import ListingRow, MatchingChunk, SearchResult

from .store import ChunkMatch, DocumentRecord


def create_highlight(content: str | None, length: int = HIGHLIGHT_LENGTH) -> str:
    """Leading excerpt of content, with an ellipsis when truncated."""
    if not content:
        return ""
    if len(content) <= length:
        return content
    return content[:length] + HIGHLIGHT_ELLIPSIS


def fallback_id() -> str:
    return f"unknown-{uuid.uuid4().hex[:7]}"


def from_vector_matches(
    record: DocumentRecord,
    chunks: list[ChunkMatch],
    match_threshold: float,
) -> SearchResult:
    """Build a ranked result: best passage decides similarity and highlight."""
    ranked = sorted(chunks, key=lambda c: c.similarity, reverse=True)
    top = ranked[0] if ranked else None
    return SearchResult(
        id=record.id or fallback_id(),
        title=record.title or DEFAULT_TITLE,
        description=record.description,
        similarity=top.similarity if top else 0.0,
        highlight=create_highlight(top.content) if top else "",
        matching_chunks=[
            MatchingChunk(chunk_index=c.chunk_index, content=c.content, similarity=c.similarity)
            for c in ranked
            if c.similarity >= match_threshold
        ],
        tags=record.tag_names,
        category_name=record.category_name,
        subcategory_name=record.subcategory_name,
        created_at=record.created_at,
        updated_at=record.updated_at,
        embedding_status=record.embedding_status or DEFAULT_EMBEDDING_STATUS,
    )


def from_listing_row(row: Union[ListingRow, Mapping[str, Any]]) -> SearchResult:
    if not isinstance(row, ListingRow):
        row = ListingRow.model_validate(row)
    return SearchResult(
        id=row.id or fallback_id(),
        title=row.title or DEFAULT_TITLE,
        description=row.description,
        similarity=LISTING_SIMILARITY,
        highlight=create_highlight(row.content_preview),
        matching_chunks=[],
        tags=[t.name for t in row.tags if t.name],
        category_name=row.category.name if row.category else None,
        subcategory_name=row.subcategory.name if row.subcategory else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
        embedding_status=row.embedding_status or DEFAULT_EMBEDDING_STATUS,
    )


def record_to_listing_row(record: DocumentRecord) -> ListingRow:
    return ListingRow(
        id=record.id,
        title=record.title,
        description=record.description,
        content_preview=record.content_preview,
        category={"id": record.category_id, "name": record.category_name} if record.category_id else None,
        subcategory={"id": record.subcategory_id, "name": record.subcategory_name} if record.subcategory_id else None,
        tags=[{"id": t.id, "name": t.name} for t in record.tags],
        created_at=record.created_at,
        updated_at=record.updated_at,
        embedding_status=record.embedding_status,
    )


def _tag_name(tag: Any) -> str | None:
    if isinstance(tag, Mapping):
        return tag.get("name")
    return str(tag) if tag else None


def normalize_result(payload: Mapping[str, Any]) -> SearchResult:
    """Fill defaults on a result payload received from the API so every field is present."""
    chunks = [
        MatchingChunk.model_validate(c) for c in (payload.get("matching_chunks") or [])
    ]
    chunks.sort(key=lambda c: c.similarity, reverse=True)
    similarity = payload.get("similarity")
    return SearchResult(
        id=payload.get("id") or fallback_id(),
        title=payload.get("title") or DEFAULT_TITLE,
        description=payload.get("description"),
        similarity=LISTING_SIMILARITY if similarity is None else float(similarity),
        highlight=payload.get("highlight") or "",
        matching_chunks=chunks,
        tags=[n for n in (_tag_name(t) for t in (payload.get("tags") or [])) if n],
        category_name=payload.get("category_name"),
        subcategory_name=payload.get("subcategory_name"),
        created_at=payload.get("created_at"),
        updated_at=payload.get("updated_at"),
        embedding_status=payload.get("embedding_status") or DEFAULT_EMBEDDING_STATUS,
    )
