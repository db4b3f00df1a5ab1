import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    DateTime,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship

from .session import Base

from pgvector.sqlalchemy import Vector

from portal_search.core import get_settings


def uuid4_str():
    return str(uuid.uuid4())


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    user_id = Column(UUID(as_uuid=False), unique=True, nullable=False, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    role_type = Column(String(50), nullable=True)
    team = Column(String(255), nullable=True)
    area = Column(String(255), nullable=True)
    region = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DocumentCategory(Base):
    __tablename__ = "document_categories"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    name = Column(String(255), nullable=False)

    subcategories = relationship("DocumentSubcategory", back_populates="category")


class DocumentSubcategory(Base):
    __tablename__ = "document_subcategories"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    category_id = Column(UUID(as_uuid=False), ForeignKey("document_categories.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)

    category = relationship("DocumentCategory", back_populates="subcategories")


class Document(Base):
    __tablename__ = "documents"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    title = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    content_preview = Column(Text, nullable=True)
    category_id = Column(UUID(as_uuid=False), ForeignKey("document_categories.id", ondelete="SET NULL"), nullable=True)
    subcategory_id = Column(UUID(as_uuid=False), ForeignKey("document_subcategories.id", ondelete="SET NULL"), nullable=True)
    role_type = Column(String(50), nullable=True)  # direct role attribute when no visibility rows exist
    embedding_status = Column(String(20), nullable=True, default="pending")  # pending, processing, complete, error
    uploaded_by = Column(UUID(as_uuid=False), ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=lambda: datetime.now(timezone.utc))

    category = relationship("DocumentCategory")
    subcategory = relationship("DocumentSubcategory")
    tag_assignments = relationship("DocumentTagAssignment", back_populates="document", cascade="all, delete-orphan")
    visibility = relationship("DocumentVisibility", back_populates="document", cascade="all, delete-orphan")
    chunks = relationship("DocumentChunk", back_populates="document", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_documents_category_id", "category_id"),
        Index("ix_documents_updated_at", "updated_at"),
    )


class DocumentTag(Base):
    __tablename__ = "document_tags"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    name = Column(String(100), nullable=False, unique=True)


class DocumentTagAssignment(Base):
    __tablename__ = "document_tag_assignments"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    document_id = Column(UUID(as_uuid=False), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    tag_id = Column(UUID(as_uuid=False), ForeignKey("document_tags.id", ondelete="CASCADE"), nullable=False)

    document = relationship("Document", back_populates="tag_assignments")
    tag = relationship("DocumentTag")

    __table_args__ = (
        Index("ix_document_tag_assignments_document_tag", "document_id", "tag_id", unique=True),
    )


class DocumentVisibility(Base):
    """Audience conditions for a document: {"roleTypes": [...], "teams": [...], ...}."""
    __tablename__ = "document_visibility"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    document_id = Column(UUID(as_uuid=False), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    conditions = Column(JSONB, nullable=True)

    document = relationship("Document", back_populates="visibility")


class DocumentChunk(Base):
    __tablename__ = "document_chunks"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    document_id = Column(UUID(as_uuid=False), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    chunk_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    embedding = Column(Vector(get_settings().embed_dimension), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    document = relationship("Document", back_populates="chunks")

    __table_args__ = (Index("ix_document_chunks_document_id", "document_id"),)


class DocumentSearchLog(Base):
    __tablename__ = "document_search_logs"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    user_id = Column(UUID(as_uuid=False), nullable=False)
    profile_id = Column(UUID(as_uuid=False), ForeignKey("user_profiles.id", ondelete="SET NULL"), nullable=True)
    query = Column(Text, nullable=False)
    filters = Column(JSONB, nullable=True)
    result_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("ix_document_search_logs_user_id", "user_id"),)
