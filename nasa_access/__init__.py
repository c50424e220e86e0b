"""
NASA access layer: cached, retrying, batch-capable client for the NASA API proxy.
"""

from .app.adapters.nasa_client import NasaApiClient
from .app.caching.cache_store import CacheEntry, CacheStore, make_cache_key
from .app.pipeline.batch import BatchDispatcher, BatchItem, BatchResult
from .app.pipeline.prefetch import PrefetchService
from .app.pipeline.request_pipeline import RequestPipeline
from .app.pipeline.retry_wrapper import RequestDescriptor, RetryWrapper

__all__ = [
    "NasaApiClient",
    "CacheEntry",
    "CacheStore",
    "make_cache_key",
    "BatchDispatcher",
    "BatchItem",
    "BatchResult",
    "PrefetchService",
    "RequestPipeline",
    "RequestDescriptor",
    "RetryWrapper",
]
