"""
NASA API client.

Composes the cache store, request pipeline, retry wrapper, batch dispatcher
and prefetch service into the operations exposed to application code.
"""

import asyncio
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import httpx

from shared.config import NasaAccessConfig, get_config
from shared.errors import ConfigError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..caching.cache_store import CacheStore
from ..formatting import DateLike, format_date_for_api
from ..pipeline.batch import BatchDispatcher, BatchItem, BatchResult
from ..pipeline.prefetch import PrefetchService
from ..pipeline.request_pipeline import RequestPipeline
from ..pipeline.retry_wrapper import RequestDescriptor, RetryWrapper


APOD_RETRY = (2, 1000)
NEO_FEED_RETRY = (2, 1500)
NEO_RETRY = (2, 1000)


class NasaApiClient:
    """Client for the NASA API proxy."""

    def __init__(
        self,
        config: Optional[NasaAccessConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        cache_store: Optional[CacheStore] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep=asyncio.sleep,
    ):
        self.config = config or get_config()
        self.logger = get_logger("nasa_access.client")
        self.metrics = metrics

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=self.config.api_base_url.rstrip("/"),
            timeout=self.config.request_timeout,
            follow_redirects=True,
            max_redirects=self.config.max_redirects,
            headers={"Content-Type": "application/json", "Cache-Control": "no-cache"},
        )

        self.cache_store = cache_store or CacheStore(
            self.config.cache_ttl_seconds,
            self.config.cache_sweep_threshold,
            metrics=metrics,
        )
        self.pipeline = RequestPipeline(
            self.client,
            self.cache_store,
            self.config.api_key,
            api_key_param=self.config.api_key_param,
            slow_request_threshold_ms=self.config.slow_request_threshold_ms,
            metrics=metrics,
        )
        self.retry = RetryWrapper(
            self.pipeline,
            sleep=sleep,
            default_max_retries=self.config.default_max_retries,
            default_delay_ms=self.config.default_retry_delay_ms,
            metrics=metrics,
        )
        self.batch = BatchDispatcher(
            self.pipeline,
            max_concurrency=self.config.batch_max_concurrency,
            metrics=metrics,
        )
        self.prefetcher = PrefetchService(self.pipeline, metrics=metrics)

    async def __aenter__(self) -> "NasaApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.prefetcher.drain()
        if self._owns_client:
            await self.client.aclose()

    async def _get_with_retry(self, endpoint: str, params: Dict[str, Any], policy) -> Any:
        retries, delay_ms = policy
        return await self.retry.run(RequestDescriptor(endpoint, params, retries, delay_ms))

    # APOD

    async def fetch_apod(self, date: Optional[DateLike] = None) -> Any:
        params: Dict[str, Any] = {}
        if date:
            params["date"] = self._api_date(date)
        return await self._get_with_retry("/apod", params, APOD_RETRY)

    async def fetch_apod_for_date(self, date: DateLike) -> Any:
        if not date:
            raise ConfigError("Date is required for APOD fetch")
        return await self._get_with_retry("/apod", {"date": self._api_date(date)}, APOD_RETRY)

    # Near-Earth objects

    async def fetch_neo_feed(
        self,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
    ) -> Any:
        params: Dict[str, Any] = {}
        if start_date:
            params["start_date"] = self._api_date(start_date)
        if end_date:
            params["end_date"] = self._api_date(end_date)
        return await self._get_with_retry("/neo/feed", params, NEO_FEED_RETRY)

    async def fetch_neo_details(self, asteroid_id: Union[str, int]) -> Any:
        if not asteroid_id:
            raise ConfigError("Asteroid ID is required for NEO details")
        return await self._get_with_retry(f"/neo/{asteroid_id}", {}, NEO_RETRY)

    async def browse_neo(self, page: int = 0, size: int = 20) -> Any:
        return await self._get_with_retry("/neo/browse", {"page": page, "size": size}, NEO_RETRY)

    # Resource navigator

    async def fetch_featured_resource(self) -> Any:
        return await self.pipeline.get("/resources/featured")

    async def search_resources(self, query: str, media_type: Optional[str] = None, limit: int = 20) -> Any:
        if not query:
            raise ConfigError("Search query is required")
        params: Dict[str, Any] = {"q": query, "limit": limit}
        if media_type:
            params["media_type"] = media_type
        return await self.pipeline.get("/resources/search", params)

    async def fetch_resource_details(self, nasa_id: str) -> Any:
        if not nasa_id:
            raise ConfigError("NASA ID is required for resource details")
        return await self.pipeline.get(f"/resources/{nasa_id}")

    async def fetch_asset_details(self, nasa_id: str) -> Any:
        if not nasa_id:
            raise ConfigError("NASA ID is required for asset details")
        return await self.pipeline.get(f"/resources/asset/{nasa_id}")

    # Management

    async def batch_fetch(self, items: Iterable[Union[BatchItem, Mapping[str, Any]]]) -> List[BatchResult]:
        return await self.batch.dispatch(items)

    def prefetch(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Optional[asyncio.Task]:
        return self.prefetcher.prefetch(endpoint, params)

    def clear_cache(self) -> None:
        self.cache_store.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache_store.stats()

    @staticmethod
    def _api_date(value: DateLike) -> str:
        formatted = format_date_for_api(value)
        if formatted is None:
            raise ConfigError(f"Invalid date: {value!r}", details={"date": str(value)})
        return formatted
