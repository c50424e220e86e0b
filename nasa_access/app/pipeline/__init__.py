"""
Request pipeline, retries, batch fan-out and prefetch.
"""

from .batch import BatchDispatcher, BatchItem, BatchResult
from .classifier import classify_exception, classify_response, classify_status
from .prefetch import PrefetchService
from .request_pipeline import PipelineResponse, RequestContext, RequestPipeline
from .retry_wrapper import RequestDescriptor, RetryWrapper

__all__ = [
    "BatchDispatcher",
    "BatchItem",
    "BatchResult",
    "classify_exception",
    "classify_response",
    "classify_status",
    "PrefetchService",
    "PipelineResponse",
    "RequestContext",
    "RequestPipeline",
    "RequestDescriptor",
    "RetryWrapper",
]
