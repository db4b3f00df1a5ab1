"""Client side of the search: HTTP API client, listing gateway and the debounced orchestrator."""

from .api import SearchApiClient
from .listing import ListingGateway
from .orchestrator import SearchErrorView, SearchOrchestrator, SearchState

__all__ = [
    "SearchApiClient",
    "ListingGateway",
    "SearchErrorView",
    "SearchOrchestrator",
    "SearchState",
]
