"""Metrics collection for the ingestion service.

Provides a thin convenience wrapper around ``prometheus_client`` so the
service can consistently record HTTP, pipeline stage, model and vector
store metrics.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (can be injected for testing)
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for the ingestion service.

    Parameters
    - service_name: Logical name used for scoping/labels if desired
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        # Common metrics
        self.request_count = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            registry=self.registry
        )

        # Ingestion pipeline metrics
        self.ingestion_requests = Counter(
            'ml_ingestion_requests_total',
            'Total image ingestion requests by terminal outcome',
            ['outcome'],
            registry=self.registry
        )

        self.stage_duration = Histogram(
            'ml_ingestion_stage_duration_seconds',
            'Duration of each ingestion pipeline stage',
            ['stage'],
            registry=self.registry
        )

        self.stage_failures = Counter(
            'ml_ingestion_stage_failures_total',
            'Ingestion failures partitioned by stage and error type',
            ['stage', 'error_type'],
            registry=self.registry
        )

        self.vector_store_operations = Counter(
            'ml_vector_store_operations_total',
            'Total vector store operations',
            ['operation', 'status'],
            registry=self.registry
        )

        self.model_loaded = Gauge(
            'ml_model_loaded',
            'Whether the feature model is loaded (1) or not (0)',
            ['model_name'],
            registry=self.registry
        )

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration: float
    ) -> None:
        """Record HTTP request metrics.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.request_count.labels(method=method, endpoint=endpoint, status=status).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_stage(self, stage: str, duration: float) -> None:
        """Record how long one pipeline stage took."""
        self.stage_duration.labels(stage=stage).observe(duration)

    def record_stage_failure(self, stage: str, error_type: str) -> None:
        """Record a stage failure."""
        self.stage_failures.labels(stage=stage, error_type=error_type).inc()

    def record_ingestion(self, outcome: str) -> None:
        """Record a terminal ingestion outcome (``success`` or ``failure``)."""
        self.ingestion_requests.labels(outcome=outcome).inc()

    def record_vector_store_operation(self, operation: str, status: str) -> None:
        """Record vector store operation metrics."""
        self.vector_store_operations.labels(operation=operation, status=status).inc()

    def set_model_loaded(self, model_name: str, loaded: bool) -> None:
        self.model_loaded.labels(model_name=model_name).set(1 if loaded else 0)

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create metrics collector for a service.

    Returns a process-wide singleton to avoid duplicate collectors/labels.
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector
