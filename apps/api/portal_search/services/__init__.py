"""Search and listing services."""

from .listing import ListingService
from .search import SearchGateway

__all__ = ["ListingService", "SearchGateway"]
