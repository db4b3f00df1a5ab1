from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from portal_search.core import DEFAULT_EMBEDDING_STATUS, DEFAULT_TITLE, MAX_MATCH_COUNT

SortMode = Literal["similarity", "created_at", "title"]


class MatchingChunk(BaseModel):
    chunk_index: int
    content: str
    similarity: float


class SearchResult(BaseModel):
    """Canonical result shape shared by vector-search and listing results."""

    id: str
    title: str = DEFAULT_TITLE
    description: Optional[str] = None
    similarity: float = 1.0
    highlight: str = ""
    matching_chunks: list[MatchingChunk] = []
    tags: list[str] = []
    category_name: Optional[str] = None
    subcategory_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    embedding_status: str = DEFAULT_EMBEDDING_STATUS


class SearchRequest(BaseModel):
    # Left untyped so the query validator can report wrong types with its own message
    query: Any = None
    filters: dict[str, Any] = {}
    match_threshold: Optional[float] = Field(None, ge=0, le=1)
    match_count: Optional[int] = Field(None, ge=1, le=MAX_MATCH_COUNT)
    sort_by: SortMode = "similarity"
    log_search: bool = True


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    result_count: int
    searched_at: datetime
    filters_used: dict[str, Any] = {}
    sort_by: SortMode = "similarity"
    results: list[SearchResult] = []


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class ListingRequest(BaseModel):
    """Attribute-only browse; camelCase keys from the portal UI are accepted."""

    model_config = ConfigDict(populate_by_name=True)

    category_id: Optional[str] = Field(None, alias="categoryId")
    subcategory_id: Optional[str] = Field(None, alias="subcategoryId")
    tag_id: Optional[str] = Field(None, alias="tagId")
    # Any other search filter keys (names, role, several tags)
    filters: dict[str, Any] = {}
    limit: Optional[int] = Field(None, ge=1, le=MAX_MATCH_COUNT)


class NamedRef(BaseModel):
    id: str
    name: Optional[str] = None


class ListingRow(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    content_preview: Optional[str] = None
    category: Optional[NamedRef] = None
    subcategory: Optional[NamedRef] = None
    tags: list[NamedRef] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    embedding_status: Optional[str] = None


class ListingResponse(BaseModel):
    success: bool = True
    data: list[ListingRow] = []
    total: int = 0
