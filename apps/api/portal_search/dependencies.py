from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from portal_search.core import decode_access_token, get_settings
from portal_search.db.session import async_session
from portal_search.providers import EmbeddingProvider, get_embedding_provider
from portal_search.services import ListingService, SearchGateway
from portal_search.services.search import ActivityLogger, DocumentStore
from portal_search.services.search.sql_store import SqlDocumentStore, SqlSearchLogSink

security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


def get_document_store(db: Annotated[AsyncSession, Depends(get_db)]) -> DocumentStore:
    return SqlDocumentStore(db)


def get_embedder() -> EmbeddingProvider:
    try:
        return get_embedding_provider()
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


def get_activity_logger(request: Request) -> ActivityLogger:
    """One logger per app so a disabled sink stays disabled across requests."""
    state = request.app.state
    if getattr(state, "activity_logger", None) is None:
        s = get_settings()
        state.activity_logger = ActivityLogger(
            SqlSearchLogSink(async_session),
            enabled=s.search_log_enabled,
            disable_on_failure=s.search_log_disable_on_failure,
        )
    return state.activity_logger


def get_search_gateway(
    embedder: Annotated[EmbeddingProvider, Depends(get_embedder)],
    store: Annotated[DocumentStore, Depends(get_document_store)],
    activity_logger: Annotated[ActivityLogger, Depends(get_activity_logger)],
) -> SearchGateway:
    return SearchGateway(embedder, store, activity_logger, get_settings())


def get_listing_service(
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> ListingService:
    return ListingService(store, get_settings())
