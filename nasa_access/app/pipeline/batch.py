"""
Concurrent fan-out of independent requests with per-item failure isolation.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union, TYPE_CHECKING

from shared.errors import BatchDispatchError, SemanticError
from shared.logging import batch_id_var, get_logger
from .classifier import classify_exception
from .request_pipeline import RequestPipeline

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass(frozen=True)
class BatchItem:
    id: Any
    endpoint: str
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchResult:
    id: Any
    success: bool
    data: Any = None
    error: Optional[SemanticError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "success": self.success,
            "data": self.data,
            "error": self.error.to_response().model_dump() if self.error else None,
        }


Invoker = Callable[[BatchItem], Awaitable[Any]]


def _coerce_item(raw: Union[BatchItem, Mapping[str, Any]], index: int) -> BatchItem:
    if isinstance(raw, BatchItem):
        item = raw
    elif isinstance(raw, Mapping):
        if "id" not in raw or "endpoint" not in raw:
            raise BatchDispatchError(
                "Batch request failed: item is missing 'id' or 'endpoint'",
                details={"index": index}
            )
        item = BatchItem(raw["id"], raw["endpoint"], raw.get("params") or {})
    else:
        raise BatchDispatchError(
            f"Batch request failed: unsupported item type {type(raw).__name__}",
            details={"index": index}
        )

    if not isinstance(item.endpoint, str) or not isinstance(item.params, Mapping):
        raise BatchDispatchError(
            "Batch request failed: 'endpoint' must be a string and 'params' a mapping",
            details={"index": index}
        )
    return item


class BatchDispatcher:
    """Runs every item concurrently and reports one result per item, in input order."""

    def __init__(
        self,
        pipeline: RequestPipeline,
        *,
        max_concurrency: Optional[int] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.pipeline = pipeline
        self.max_concurrency = max_concurrency
        self.metrics = metrics
        self.logger = get_logger("nasa_access.batch")

    async def dispatch(
        self,
        items: Iterable[Union[BatchItem, Mapping[str, Any]]],
        invoke: Optional[Invoker] = None,
    ) -> List[BatchResult]:
        try:
            batch = [_coerce_item(raw, index) for index, raw in enumerate(items)]
        except TypeError as exc:
            raise BatchDispatchError(f"Batch request failed: {exc}") from exc

        if invoke is None:
            invoke = self._invoke

        token = batch_id_var.set(str(uuid.uuid4()))
        try:
            semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

            async def _run(item: BatchItem) -> Any:
                if semaphore is None:
                    return await invoke(item)
                async with semaphore:
                    return await invoke(item)

            outcomes = await asyncio.gather(*(_run(item) for item in batch), return_exceptions=True)
            results = [self._to_result(item, outcome) for item, outcome in zip(batch, outcomes)]

            succeeded = sum(1 for result in results if result.success)
            self.logger.info(
                "Batch completed",
                items=len(results),
                succeeded=succeeded,
                failed=len(results) - succeeded
            )
            return results
        finally:
            batch_id_var.reset(token)

    async def _invoke(self, item: BatchItem) -> Any:
        return await self.pipeline.get(item.endpoint, item.params)

    def _to_result(self, item: BatchItem, outcome: Any) -> BatchResult:
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome

        if isinstance(outcome, Exception):
            error = classify_exception(outcome)
            if not isinstance(outcome, SemanticError):
                self.logger.error(
                    "Batch item raised an unexpected exception",
                    item_id=item.id,
                    endpoint=item.endpoint,
                    error_type=type(outcome).__name__,
                    error=str(outcome)
                )
            if self.metrics:
                self.metrics.increment_counter("batch_items_total", outcome="failure")
            return BatchResult(id=item.id, success=False, data=None, error=error)

        if self.metrics:
            self.metrics.increment_counter("batch_items_total", outcome="success")
        return BatchResult(id=item.id, success=True, data=outcome, error=None)
