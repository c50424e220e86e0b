"""
Shared metrics configuration for the NASA access layer.
"""

from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info


class MetricsCollector:
    """Centralized metrics collector for the access layer."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # Private registry per collector so several clients can coexist in one process.
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up access layer metrics."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # Upstream requests
        self._metrics["api_requests_total"] = Counter(
            "api_requests_total",
            "Total upstream API requests",
            ["endpoint", "outcome"],
            registry=self.registry
        )

        self._metrics["api_request_duration_seconds"] = Histogram(
            "api_request_duration_seconds",
            "Upstream API request duration in seconds",
            ["endpoint"],
            registry=self.registry
        )

        self._metrics["slow_requests_total"] = Counter(
            "slow_requests_total",
            "Requests slower than the slow-request threshold",
            ["endpoint"],
            registry=self.registry
        )

        # Cache
        self._metrics["cache_hits_total"] = Counter(
            "cache_hits_total",
            "Total cache hits",
            ["endpoint"],
            registry=self.registry
        )

        self._metrics["cache_misses_total"] = Counter(
            "cache_misses_total",
            "Total cache misses",
            ["endpoint"],
            registry=self.registry
        )

        self._metrics["cache_sweeps_total"] = Counter(
            "cache_sweeps_total",
            "Total write-triggered cache sweeps",
            registry=self.registry
        )

        self._metrics["cache_entries"] = Gauge(
            "cache_entries",
            "Entries currently held by the response cache",
            registry=self.registry
        )

        # Errors and resilience
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total classified errors",
            ["error_type"],
            registry=self.registry
        )

        self._metrics["retries_total"] = Counter(
            "retries_total",
            "Total retry attempts",
            ["endpoint"],
            registry=self.registry
        )

        self._metrics["batch_items_total"] = Counter(
            "batch_items_total",
            "Total batch items by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["prefetch_total"] = Counter(
            "prefetch_total",
            "Total prefetches by outcome",
            ["outcome"],
            registry=self.registry
        )

    def get_sample_value(self, name: str, **labels) -> Optional[float]:
        """Read the current value of a sample from this collector's registry."""
        return self.registry.get_sample_value(name, labels)

    def record_error(self, error_type: str):
        """Record error metrics."""
        self._metrics["errors_total"].labels(error_type=error_type).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)

