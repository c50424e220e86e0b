"""
Bounded, fixed-delay retries around a single pipeline invocation.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type, TYPE_CHECKING

from shared.retry import RetryConfig, retry_async
from .request_pipeline import RequestPipeline

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass
class RequestDescriptor:
    """One logical GET plus its remaining retry budget."""

    endpoint: str
    params: Dict[str, Any] = field(default_factory=dict)
    retries_remaining: int = 2
    retry_delay_ms: int = 1000

    def __post_init__(self):
        if self.retries_remaining < 0:
            raise ValueError("retries_remaining must be >= 0")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be >= 0")


class RetryWrapper:
    """Re-invokes the pipeline after a fixed delay until the descriptor's budget is spent.

    Every semantic error is retried the same way, including auth and config
    failures. Pass ``give_up_on`` to stop early on specific error classes.
    """

    def __init__(
        self,
        pipeline: RequestPipeline,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        give_up_on: Tuple[Type[BaseException], ...] = (),
        default_max_retries: int = 2,
        default_delay_ms: int = 1000,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.pipeline = pipeline
        self.sleep = sleep
        self.give_up_on = give_up_on
        self.default_max_retries = default_max_retries
        self.default_delay_ms = default_delay_ms
        self.metrics = metrics

    async def run(self, descriptor: RequestDescriptor) -> Any:
        config = RetryConfig(
            max_retries=descriptor.retries_remaining,
            delay_ms=descriptor.retry_delay_ms,
            give_up_on=self.give_up_on,
        )

        def _consume(retries_remaining: int, exc: BaseException) -> None:
            descriptor.retries_remaining = retries_remaining
            if self.metrics:
                self.metrics.increment_counter("retries_total", endpoint=descriptor.endpoint)

        return await retry_async(
            lambda: self.pipeline.get(descriptor.endpoint, descriptor.params),
            config,
            operation=descriptor.endpoint.strip("/").replace("/", ".") or "root",
            sleep=self.sleep,
            on_retry=_consume,
        )

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        max_retries: Optional[int] = None,
        delay_ms: Optional[int] = None,
    ) -> Any:
        descriptor = RequestDescriptor(
            endpoint,
            dict(params or {}),
            self.default_max_retries if max_retries is None else max_retries,
            self.default_delay_ms if delay_ms is None else delay_ms,
        )
        return await self.run(descriptor)
