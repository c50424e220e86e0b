"""
Request pipeline for upstream NASA API calls.

Each logical request flows through an explicit, ordered list of stages over a
``RequestContext``:

    credential injection -> cache key -> cache lookup -> transport
        -> cache write / error classification

Cache stages only apply to GET requests. A cache hit short-circuits the
transport stage entirely.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

import httpx

from shared.errors import SemanticError
from shared.logging import get_logger, request_id_var
from ..caching.cache_store import CacheStore, make_cache_key
from .classifier import classify_exception, classify_response

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_SLOW_REQUEST_THRESHOLD_MS = 2000.0
DEFAULT_API_KEY_PARAM = "api_key"


@dataclass(frozen=True)
class RequestContext:
    """State carried between pipeline stages."""

    method: str
    endpoint: str
    params: Mapping[str, Any] = field(default_factory=dict)
    json: Any = None
    cache_key: Optional[str] = None

    @property
    def cacheable(self) -> bool:
        return self.method == "GET"


@dataclass(frozen=True)
class PipelineResponse:
    """Outcome of one pipeline run."""

    payload: Any
    from_cache: bool
    status_code: int
    elapsed_ms: float
    cache_key: Optional[str] = None
    upstream_cache: Optional[str] = None


def inject_credentials(ctx: RequestContext, param_name: str, api_key: str) -> RequestContext:
    """Return a context whose params carry the credential; the caller's map is untouched."""
    params = dict(ctx.params)
    params[param_name] = api_key
    return replace(ctx, params=params)


def assign_cache_key(ctx: RequestContext) -> RequestContext:
    if not ctx.cacheable:
        return ctx
    return replace(ctx, cache_key=make_cache_key(ctx.endpoint, ctx.params))


def _wire_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    wire: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        wire[key] = value
    return wire


def _decode_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class RequestPipeline:
    """Credential injection, caching, transport and classification for one request."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache_store: CacheStore,
        api_key: str,
        *,
        api_key_param: str = DEFAULT_API_KEY_PARAM,
        slow_request_threshold_ms: float = DEFAULT_SLOW_REQUEST_THRESHOLD_MS,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.client = client
        self.cache_store = cache_store
        self.api_key = api_key
        self.api_key_param = api_key_param
        self.slow_request_threshold_ms = slow_request_threshold_ms
        self.metrics = metrics
        self.logger = get_logger("nasa_access.pipeline")

    async def get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Run a GET and return its payload."""
        response = await self.execute(RequestContext("GET", endpoint, params or {}))
        return response.payload

    async def post(self, endpoint: str, params: Optional[Mapping[str, Any]] = None, json: Any = None) -> Any:
        """Run a POST; never cached."""
        response = await self.execute(RequestContext("POST", endpoint, params or {}, json=json))
        return response.payload

    async def execute(self, ctx: RequestContext) -> PipelineResponse:
        request_id = request_id_var.get()
        token = None
        if request_id is None:
            token = request_id_var.set(str(uuid.uuid4()))

        started = time.perf_counter()
        try:
            try:
                ctx = inject_credentials(ctx, self.api_key_param, self.api_key)
                ctx = assign_cache_key(ctx)
            except (TypeError, ValueError) as exc:
                raise self._fail(ctx, classify_exception(exc)) from exc

            cached = self._lookup(ctx)
            if cached is not None:
                return replace(cached, elapsed_ms=(time.perf_counter() - started) * 1000)

            response = await self._send(ctx)
            elapsed_ms = (time.perf_counter() - started) * 1000
            self._observe(ctx, elapsed_ms)

            if not response.is_success:
                raise self._fail(ctx, classify_response(response))

            payload = _decode_payload(response)
            if ctx.cacheable and ctx.cache_key is not None:
                self.cache_store.set(ctx.cache_key, payload)

            upstream_cache = response.headers.get("X-Cache")
            self.logger.debug(
                "API request completed",
                endpoint=ctx.endpoint,
                status_code=response.status_code,
                duration_ms=round(elapsed_ms, 1),
                upstream_cache=upstream_cache
            )
            if self.metrics:
                self.metrics.increment_counter("api_requests_total", endpoint=ctx.endpoint, outcome="success")

            return PipelineResponse(
                payload=payload,
                from_cache=False,
                status_code=response.status_code,
                elapsed_ms=elapsed_ms,
                cache_key=ctx.cache_key,
                upstream_cache=upstream_cache,
            )
        finally:
            if token is not None:
                request_id_var.reset(token)

    def _lookup(self, ctx: RequestContext) -> Optional[PipelineResponse]:
        if not ctx.cacheable or ctx.cache_key is None:
            return None

        entry = self.cache_store.get(ctx.cache_key)
        if entry is None or not self.cache_store.is_fresh(entry):
            self.logger.debug("Cache miss", endpoint=ctx.endpoint, cache_key=ctx.cache_key)
            if self.metrics:
                self.metrics.increment_counter("cache_misses_total", endpoint=ctx.endpoint)
            return None

        self.logger.debug("Cache hit", endpoint=ctx.endpoint, cache_key=ctx.cache_key)
        if self.metrics:
            self.metrics.increment_counter("cache_hits_total", endpoint=ctx.endpoint)
        return PipelineResponse(
            payload=entry.payload,
            from_cache=True,
            status_code=200,
            elapsed_ms=0.0,
            cache_key=ctx.cache_key,
        )

    async def _send(self, ctx: RequestContext) -> httpx.Response:
        try:
            request = self.client.build_request(
                ctx.method,
                ctx.endpoint,
                params=_wire_params(ctx.params),
                json=ctx.json,
            )
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise self._fail(ctx, classify_exception(exc)) from exc

        started = time.perf_counter()
        try:
            return await self.client.send(request)
        except Exception as exc:
            self._observe(ctx, (time.perf_counter() - started) * 1000)
            raise self._fail(ctx, classify_exception(exc)) from exc

    def _observe(self, ctx: RequestContext, elapsed_ms: float) -> None:
        if self.metrics:
            self.metrics.observe_histogram("api_request_duration_seconds", elapsed_ms / 1000, endpoint=ctx.endpoint)

        if elapsed_ms > self.slow_request_threshold_ms:
            self.logger.warning(
                "Slow API request",
                endpoint=ctx.endpoint,
                duration_ms=round(elapsed_ms, 1),
                threshold_ms=self.slow_request_threshold_ms
            )
            if self.metrics:
                self.metrics.increment_counter("slow_requests_total", endpoint=ctx.endpoint)

    def _fail(self, ctx: RequestContext, error: SemanticError) -> SemanticError:
        self.logger.warning(
            "API request failed",
            endpoint=ctx.endpoint,
            method=ctx.method,
            code=error.code,
            error=error.message,
            details=error.details
        )
        if self.metrics:
            self.metrics.increment_counter("api_requests_total", endpoint=ctx.endpoint, outcome="failure")
            self.metrics.record_error(error.code)
        return error
