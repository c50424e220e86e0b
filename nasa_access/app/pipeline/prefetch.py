"""
Fire-and-forget cache warming.
"""

import asyncio
from typing import Any, Mapping, Optional, Set, TYPE_CHECKING

from shared.logging import get_logger
from .request_pipeline import RequestPipeline

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class PrefetchService:
    """Runs GETs purely for their cache side effect; failures only reach the log."""

    def __init__(self, pipeline: RequestPipeline, *, metrics: Optional["MetricsCollector"] = None):
        self.pipeline = pipeline
        self.metrics = metrics
        self.logger = get_logger("nasa_access.prefetch")
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def prefetch(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Optional[asyncio.Task]:
        """Schedule a warm on the running loop and return immediately.

        Returns ``None`` without raising when no event loop is running.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.warning("Prefetch skipped: no running event loop", endpoint=endpoint)
            if self.metrics:
                self.metrics.increment_counter("prefetch_total", outcome="skipped")
            return None

        task = loop.create_task(self.warm(endpoint, params))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def warm(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> bool:
        """Fetch and discard; returns whether the cache was populated."""
        try:
            await self.pipeline.get(endpoint, params)
        except Exception as exc:
            self.logger.warning("Prefetch failed", endpoint=endpoint, error=str(exc))
            if self.metrics:
                self.metrics.increment_counter("prefetch_total", outcome="failure")
            return False

        self.logger.debug("Prefetched", endpoint=endpoint)
        if self.metrics:
            self.metrics.increment_counter("prefetch_total", outcome="success")
        return True

    async def drain(self) -> None:
        """Wait for every scheduled prefetch to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
