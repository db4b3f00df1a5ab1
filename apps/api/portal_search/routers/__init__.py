from .documents import router as documents_router
from .search import router as search_router

ROUTERS = (search_router, documents_router)

__all__ = ["ROUTERS", "documents_router", "search_router"]
