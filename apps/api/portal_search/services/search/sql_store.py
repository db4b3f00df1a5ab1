"""Postgres + pgvector implementations of the search backends."""

import logging
import uuid
from typing import Callable, Optional

from sqlalchemy import Select, and_, or_, select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portal_search.core import DEFAULT_EMBEDDING_STATUS
from portal_search.db.models import (
    Document,
    DocumentCategory,
    DocumentSearchLog,
    DocumentSubcategory,
    DocumentTagAssignment,
    DocumentVisibility,
    UserProfile,
)

from .filters import FilterSet
from .store import (
    ChunkMatch,
    DocumentRecord,
    DocumentStore,
    SearchLogEntry,
    SearchLogSink,
    TagRef,
)

logger = logging.getLogger(__name__)

_MATCH_CHUNKS_SQL = text("""
SELECT dc.document_id, dc.chunk_index, dc.content,
       1 - (dc.embedding <=> CAST(:qvec AS vector)) AS similarity
FROM document_chunks dc
WHERE dc.embedding IS NOT NULL
  AND 1 - (dc.embedding <=> CAST(:qvec AS vector)) >= :threshold
ORDER BY dc.embedding <=> CAST(:qvec AS vector)
LIMIT :count
""")


def _vector_literal(vec: list[float]) -> str:
    return "[" + ",".join(str(round(x, 6)) for x in vec) + "]"


def document_to_record(doc: Document) -> DocumentRecord:
    return DocumentRecord(
        id=str(doc.id),
        title=doc.title,
        description=doc.description,
        content_preview=doc.content_preview,
        category_id=str(doc.category_id) if doc.category_id else None,
        category_name=doc.category.name if doc.category else None,
        subcategory_id=str(doc.subcategory_id) if doc.subcategory_id else None,
        subcategory_name=doc.subcategory.name if doc.subcategory else None,
        role_type=doc.role_type,
        visibility=[v.conditions or {} for v in doc.visibility],
        tags=[TagRef(id=str(a.tag.id), name=a.tag.name) for a in doc.tag_assignments if a.tag],
        created_at=doc.created_at,
        updated_at=doc.updated_at,
        embedding_status=doc.embedding_status,
    )


def _document_query():
    return select(Document).options(
        selectinload(Document.category),
        selectinload(Document.subcategory),
        selectinload(Document.visibility),
        selectinload(Document.tag_assignments).selectinload(DocumentTagAssignment.tag),
    )


def _uuid_or_none(value: str) -> Optional[str]:
    try:
        return str(uuid.UUID(value))
    except (TypeError, ValueError):
        return None


def visible_to_role(role: str):
    """Visibility rows listing the role; without any row, the document's own role_type."""
    listed = Document.visibility.any(
        or_(
            DocumentVisibility.conditions["roleTypes"].contains([role]),
            DocumentVisibility.conditions["role_type"].astext == role,
        )
    )
    return or_(listed, and_(~Document.visibility.any(), Document.role_type == role))


def listing_statement(filters: FilterSet, limit: int) -> Optional[Select]:
    """Every applied filter goes into the WHERE clause ahead of the LIMIT.

    Returns None when a malformed id means no document can match.
    """
    stmt = _document_query()
    if filters.category_id:
        category_id = _uuid_or_none(filters.category_id)
        if category_id is None:
            return None
        stmt = stmt.where(Document.category_id == category_id)
    if filters.category:
        stmt = stmt.where(Document.category.has(DocumentCategory.name == filters.category))
    if filters.subcategory_id:
        subcategory_id = _uuid_or_none(filters.subcategory_id)
        if subcategory_id is None:
            return None
        stmt = stmt.where(Document.subcategory_id == subcategory_id)
    if filters.subcategory:
        stmt = stmt.where(Document.subcategory.has(DocumentSubcategory.name == filters.subcategory))
    if filters.role_type:
        stmt = stmt.where(visible_to_role(filters.role_type))
    if filters.tag_ids:
        tag_ids = [t for t in (_uuid_or_none(t) for t in filters.tag_ids) if t]
        if not tag_ids:
            return None
        tagged = select(DocumentTagAssignment.document_id).where(DocumentTagAssignment.tag_id.in_(tag_ids))
        stmt = stmt.where(Document.id.in_(tagged))
    return stmt.order_by(Document.updated_at.desc().nulls_last()).limit(limit)


class SqlDocumentStore(DocumentStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def match_chunks(self, embedding: list[float], threshold: float, count: int) -> list[ChunkMatch]:
        result = await self.db.execute(
            _MATCH_CHUNKS_SQL,
            {"qvec": _vector_literal(embedding), "threshold": threshold, "count": count},
        )
        return [
            ChunkMatch(
                document_id=str(r.document_id),
                chunk_index=int(r.chunk_index),
                content=r.content or "",
                similarity=float(r.similarity) if r.similarity is not None else 0.0,
            )
            for r in result.fetchall()
        ]

    async def fetch_documents(self, document_ids: list[str]) -> list[DocumentRecord]:
        if not document_ids:
            return []
        stmt = _document_query().where(
            Document.id.in_(document_ids),
            Document.embedding_status == DEFAULT_EMBEDDING_STATUS,
        )
        result = await self.db.execute(stmt)
        return [document_to_record(d) for d in result.scalars().all()]

    async def list_documents(self, filters: FilterSet, limit: int) -> list[DocumentRecord]:
        stmt = listing_statement(filters, limit)
        if stmt is None:
            return []
        result = await self.db.execute(stmt)
        return [document_to_record(d) for d in result.scalars().all()]


class SqlSearchLogSink(SearchLogSink):
    """Writes document_search_logs in its own session; the request session may be gone by then."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def record_search(self, entry: SearchLogEntry) -> None:
        async with self._session_factory() as db:
            profile_id = (
                await db.execute(select(UserProfile.id).where(UserProfile.user_id == entry.user_id))
            ).scalar_one_or_none()
            db.add(
                DocumentSearchLog(
                    user_id=entry.user_id,
                    profile_id=profile_id,
                    query=entry.query,
                    filters=entry.filters or None,
                    result_count=entry.result_count,
                )
            )
            await db.commit()
        logger.debug("Search activity logged for user %s", entry.user_id)
