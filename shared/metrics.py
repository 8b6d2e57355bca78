"""
Prometheus metrics for the Market Dashboard Gateway.
"""

from typing import Any, Dict, Optional, Sequence, Tuple, Type, Union

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, generate_latest

MetricType = Type[Union[Counter, Histogram]]

# (name, type, description, labels)
COMMON_METRICS: Sequence[Tuple[str, MetricType, str, Tuple[str, ...]]] = (
    ("http_requests_total", Counter, "Total HTTP requests", ("method", "endpoint", "status_code")),
    ("http_request_duration_seconds", Histogram, "HTTP request duration in seconds", ("method", "endpoint")),
    ("health_check_total", Counter, "Total health check requests", ("status",)),
    ("errors_total", Counter, "Total errors", ("error_type", "service")),
)

GATEWAY_METRICS: Sequence[Tuple[str, MetricType, str, Tuple[str, ...]]] = (
    ("rate_limit_hits_total", Counter, "Total requests rejected by the rate limiter", ("endpoint",)),
    ("cache_hits_total", Counter, "Total response cache hits", ("cache_type",)),
    ("cache_misses_total", Counter, "Total response cache misses", ("cache_type",)),
    ("upstream_requests_total", Counter, "Total requests to market-data providers", ("upstream", "status_code")),
    ("upstream_request_duration_seconds", Histogram, "Market-data provider latency in seconds", ("upstream",)),
)


class MetricsCollector:
    """Owns a private registry so several app instances can live in one process."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}

        info = Info("service_info", "Service information", registry=self.registry)
        info.info({"service": service_name, "version": "1.0.0"})
        self._metrics["service_info"] = info

        self._register(COMMON_METRICS)
        if service_name == "gateway":
            self._register(GATEWAY_METRICS)

    def _register(self, definitions) -> None:
        for name, metric_type, description, labels in definitions:
            self._metrics[name] = metric_type(name, description, list(labels), registry=self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        self.increment_counter("http_requests_total", method=method, endpoint=endpoint, status_code=str(status_code))
        self.observe_histogram("http_request_duration_seconds", duration, method=method, endpoint=endpoint)

    def record_health_check(self, status: str):
        self.increment_counter("health_check_total", status=status)

    def record_error(self, error_type: str, service: Optional[str] = None):
        self.increment_counter("errors_total", error_type=error_type, service=service or self.service_name)

    def record_rate_limit_hit(self, endpoint: str):
        self.increment_counter("rate_limit_hits_total", endpoint=endpoint)

    def record_cache_access(self, cache_type: str, hit: bool):
        self.increment_counter("cache_hits_total" if hit else "cache_misses_total", cache_type=cache_type)

    def record_upstream_request(self, upstream: str, status_code: int, duration: float):
        """Record one call to a market-data provider."""
        self.increment_counter("upstream_requests_total", upstream=upstream, status_code=str(status_code))
        self.observe_histogram("upstream_request_duration_seconds", duration, upstream=upstream)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter; unknown metric names are ignored."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()

    def observe_histogram(self, metric_name: str, value: float, **labels):
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)

    def sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read back a sample, mostly useful in tests."""
        return self.registry.get_sample_value(name, labels or {})

    def render(self) -> bytes:
        """Registry contents in Prometheus text exposition format."""
        return generate_latest(self.registry)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    return MetricsCollector(service_name, registry)
