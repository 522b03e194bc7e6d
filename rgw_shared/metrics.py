"""
Operational metrics for the exporter itself.

These describe the exporter (refresh passes, fetch errors, HTTP traffic),
not the cluster; cluster series come from the snapshot collector.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry
from typing import Dict, Any, Optional
import time
from contextlib import contextmanager


class MetricsCollector:
    """Centralized metrics collector for a service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None, version: str = "1.0.0"):
        self.service_name = service_name
        self.version = version
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["info"] = Info(
            "cephrgw_exporter",
            "Exporter information",
            registry=self.registry
        )
        self._metrics["info"].info({
            "service": self.service_name,
            "version": self.version
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "cephrgw_exporter_http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "cephrgw_exporter_http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Refresh metrics
        self._metrics["refresh_passes_total"] = Counter(
            "cephrgw_exporter_refresh_passes_total",
            "Total snapshot refresh passes",
            ["status"],
            registry=self.registry
        )

        self._metrics["refresh_duration_seconds"] = Histogram(
            "cephrgw_exporter_refresh_duration_seconds",
            "Snapshot refresh pass duration in seconds",
            buckets=(0.5, 1, 2.5, 5, 10, 30, 60, 120, 300, 600),
            registry=self.registry
        )

        self._metrics["entity_fetch_errors_total"] = Counter(
            "cephrgw_exporter_entity_fetch_errors_total",
            "Per-entity admin API fetch failures",
            ["kind"],
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_refresh(self, status: str):
        """Record the outcome of a refresh pass."""
        self._metrics["refresh_passes_total"].labels(status=status).inc()

    def record_entity_fetch_error(self, kind: str):
        """Record a skipped entity."""
        self._metrics["entity_fetch_errors_total"].labels(kind=kind).inc()

    @contextmanager
    def time_operation(self, operation_name: str, **labels):
        """Context manager to time an operation."""
        start_time = time.time()
        try:
            yield
        finally:
            duration = time.time() - start_time
            metric = self._metrics.get(operation_name)
            if metric is not None:
                if labels:
                    metric = metric.labels(**labels)
                metric.observe(duration)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
