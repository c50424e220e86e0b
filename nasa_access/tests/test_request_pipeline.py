"""
Unit tests for the RequestPipeline.
"""

import asyncio
import json
from typing import Dict, List

import httpx
import pytest
from structlog.testing import capture_logs

from nasa_access.app.caching.cache_store import CacheStore
from nasa_access.app.pipeline.request_pipeline import RequestContext, RequestPipeline, inject_credentials
from shared.errors import ConfigError, NetworkError, RateLimitError, ServerError
from shared.metrics import MetricsCollector


BASE_URL = "http://nasa.test/api/nasa"


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class Upstream:
    """Records requests and answers with a fixed status/body."""

    def __init__(self, status: int = 200, body=None, headers: Dict[str, str] = None):
        self.status = status
        self.body = body if body is not None else {"title": "Pillars of Creation"}
        self.headers = headers or {}
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        content = self.body if isinstance(self.body, (str, bytes)) else json.dumps(self.body)
        return httpx.Response(self.status, content=content, headers=self.headers)


class TestRequestPipeline:
    """Test cases for RequestPipeline."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return CacheStore(ttl_seconds=300, sweep_threshold=100, clock=clock)

    @pytest.fixture
    def upstream(self):
        return Upstream()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("test")

    @pytest.fixture
    def pipeline(self, upstream, store, metrics):
        client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(upstream))
        return RequestPipeline(client, store, "test-key", metrics=metrics)

    def test_inject_credentials_copies_params(self):
        original = {"date": "2024-01-01"}
        ctx = inject_credentials(RequestContext("GET", "/apod", original), "api_key", "secret")

        assert ctx.params == {"date": "2024-01-01", "api_key": "secret"}
        assert original == {"date": "2024-01-01"}

    @pytest.mark.asyncio
    async def test_credential_appended_to_query(self, pipeline, upstream):
        params = {"date": "2024-01-01"}

        await pipeline.get("/apod", params)

        request = upstream.requests[0]
        assert request.url.path == "/api/nasa/apod"
        assert request.url.params["api_key"] == "test-key"
        assert request.url.params["date"] == "2024-01-01"
        assert params == {"date": "2024-01-01"}

    @pytest.mark.asyncio
    async def test_cache_hit_skips_network(self, pipeline, upstream):
        first = await pipeline.execute(RequestContext("GET", "/apod", {"date": "2024-01-01"}))
        second = await pipeline.execute(RequestContext("GET", "/apod", {"date": "2024-01-01"}))

        assert len(upstream.requests) == 1
        assert first.payload == second.payload
        assert first.from_cache is False
        assert second.from_cache is True
        assert first.cache_key == second.cache_key

    @pytest.mark.asyncio
    async def test_param_order_shares_cache_entry(self, pipeline, upstream):
        await pipeline.get("/neo/feed", {"start_date": "2024-01-01", "end_date": "2024-01-07"})
        await pipeline.get("/neo/feed", {"end_date": "2024-01-07", "start_date": "2024-01-01"})

        assert len(upstream.requests) == 1

    @pytest.mark.asyncio
    async def test_expired_entry_is_refetched(self, pipeline, upstream, store, clock):
        first = await pipeline.execute(RequestContext("GET", "/apod"))
        assert store.get(first.cache_key).stored_at == 0

        clock.advance(300.5)
        upstream.body = {"title": "Crab Nebula"}
        second = await pipeline.execute(RequestContext("GET", "/apod"))

        assert len(upstream.requests) == 2
        assert second.from_cache is False
        assert second.payload == {"title": "Crab Nebula"}
        assert store.get(first.cache_key).stored_at == 300.5
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_failures_are_classified_and_not_cached(self, pipeline, upstream, store):
        upstream.status = 429
        upstream.body = {"error": "slow down"}

        with pytest.raises(RateLimitError) as exc_info:
            await pipeline.get("/apod")

        assert "rate limit" in exc_info.value.message
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_server_error_status(self, pipeline, upstream):
        upstream.status = 503

        with pytest.raises(ServerError):
            await pipeline.get("/neo/browse", {"page": 0, "size": 20})

    @pytest.mark.asyncio
    async def test_no_response_is_network_error(self, store):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        pipeline = RequestPipeline(client, store, "test-key")

        with pytest.raises(NetworkError):
            await pipeline.get("/apod")
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_socket_error_after_send_is_network_error(self, store, metrics):
        def handler(request):
            raise OSError("connection reset by peer")

        client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        pipeline = RequestPipeline(client, store, "test-key", metrics=metrics)

        with pytest.raises(NetworkError) as exc_info:
            await pipeline.get("/apod")

        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.details["error_type"] == "OSError"
        assert metrics.get_sample_value("errors_total", error_type="NETWORK_ERROR") == 1.0
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_unexpected_transport_exception_is_classified(self, store):
        def handler(request):
            raise RuntimeError("transport exploded")

        client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        pipeline = RequestPipeline(client, store, "test-key")

        with pytest.raises(ConfigError) as exc_info:
            await pipeline.get("/apod")

        assert exc_info.value.details["error_type"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_unbuildable_request_is_config_error(self, pipeline, upstream):
        with pytest.raises(ConfigError):
            await pipeline.get("/apod", 42)

        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_post_bypasses_cache(self, pipeline, upstream, store):
        await pipeline.post("/apod/search", json={"query": "nebula"})
        await pipeline.post("/apod/search", json={"query": "nebula"})

        assert len(upstream.requests) == 2
        assert upstream.requests[0].method == "POST"
        assert upstream.requests[0].url.params["api_key"] == "test-key"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_post_failures_are_classified(self, pipeline, upstream):
        upstream.status = 401

        with pytest.raises(Exception) as exc_info:
            await pipeline.post("/apod/search", json={})
        assert exc_info.value.code == "AUTH_ERROR"

    @pytest.mark.asyncio
    async def test_non_json_success_body_returned_as_text(self, pipeline, upstream):
        upstream.body = "plain text"

        assert await pipeline.get("/resources/featured") == "plain text"

    @pytest.mark.asyncio
    async def test_boolean_params_sent_lowercase(self, pipeline, upstream):
        await pipeline.get("/apod", {"thumbs": True})

        assert upstream.requests[0].url.params["thumbs"] == "true"

    @pytest.mark.asyncio
    async def test_upstream_cache_header_recorded(self, pipeline, upstream):
        upstream.headers = {"X-Cache": "HIT"}

        response = await pipeline.execute(RequestContext("GET", "/apod"))

        assert response.upstream_cache == "HIT"
        assert response.from_cache is False

    @pytest.mark.asyncio
    async def test_slow_request_emits_warning(self, store):
        async def handler(request):
            await asyncio.sleep(0.05)
            return httpx.Response(200, json={"ok": True})

        client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        pipeline = RequestPipeline(client, store, "test-key", slow_request_threshold_ms=10)

        with capture_logs() as logs:
            await pipeline.get("/apod")

        slow = [entry for entry in logs if entry["event"] == "Slow API request"]
        assert len(slow) == 1
        assert slow[0]["log_level"] == "warning"
        assert slow[0]["duration_ms"] >= 10

    @pytest.mark.asyncio
    async def test_fast_request_emits_no_warning(self, pipeline):
        with capture_logs() as logs:
            await pipeline.get("/apod")

        assert not [entry for entry in logs if entry["event"] == "Slow API request"]

    @pytest.mark.asyncio
    async def test_metrics_track_hits_and_misses(self, pipeline, metrics):
        await pipeline.get("/apod")
        await pipeline.get("/apod")

        assert metrics.get_sample_value("cache_misses_total", endpoint="/apod") == 1.0
        assert metrics.get_sample_value("cache_hits_total", endpoint="/apod") == 1.0
        assert metrics.get_sample_value("api_requests_total", endpoint="/apod", outcome="success") == 1.0
