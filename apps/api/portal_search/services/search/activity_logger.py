"""Best-effort search analytics. Nothing here may fail a search."""

import asyncio
import logging
from typing import Any, Mapping, Optional

from .errors import SearchError, SearchErrorKind
from .store import SearchLogEntry, SearchLogSink

logger = logging.getLogger(__name__)


class ActivityLogger:
    def __init__(self, sink: SearchLogSink, enabled: bool = True, disable_on_failure: bool = True):
        self._sink = sink
        self.enabled = enabled
        self._disable_on_failure = disable_on_failure
        self._tasks: set[asyncio.Task] = set()

    async def log(
        self,
        user_id: str,
        query: str,
        filters: Optional[Mapping[str, Any]],
        result_count: int,
    ) -> None:
        if not self.enabled:
            return
        entry = SearchLogEntry(
            user_id=user_id,
            query=query,
            filters=dict(filters or {}),
            result_count=result_count,
        )
        try:
            await self._sink.record_search(entry)
        except Exception as e:
            error = SearchError(SearchErrorKind.LOGGING_FAILURE, f"Failed to log search activity: {e}", e)
            logger.warning("%s", error)
            if self._disable_on_failure:
                # Avoid repeating the same failure on every search
                self.enabled = False
                logger.warning("Search activity logging disabled for this process")

    def log_in_background(
        self,
        user_id: str,
        query: str,
        filters: Optional[Mapping[str, Any]],
        result_count: int,
    ) -> Optional[asyncio.Task]:
        """Schedule log() without awaiting it."""
        if not self.enabled:
            return None
        task = asyncio.create_task(self.log(user_id, query, filters, result_count))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for pending background log writes (shutdown, tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
