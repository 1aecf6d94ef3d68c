"""Metrics collection for search components.

Provides a thin convenience wrapper around ``prometheus_client`` so search
managers can consistently record request, embedding, and AI-step metrics.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per collector (can be injected if needed)
"""

from typing import Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for search components.

    Parameters
    - service_name: Logical name used for scoping/labels if desired
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)

    Exposes typed helpers for common events to keep label sets consistent.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.search_requests = Counter(
            'search_requests_total',
            'Total search requests',
            ['variant', 'status'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'search_duration_seconds',
            'Search duration',
            ['variant'],
            registry=self.registry
        )

        self.search_results = Histogram(
            'search_results_returned',
            'Number of ranked results returned per search',
            ['variant'],
            buckets=(0, 1, 5, 10, 20, 50, 100),
            registry=self.registry
        )

        self.embedding_duration = Histogram(
            'search_embedding_duration_seconds',
            'Query embedding duration',
            registry=self.registry
        )

        self.ai_fallbacks = Counter(
            'search_ai_fallbacks_total',
            'AI steps that degraded to their neutral fallback',
            ['step', 'reason'],
            registry=self.registry
        )

    def record_search(self, variant: str, duration: float, results_count: int, status: str = "ok") -> None:
        """Record a completed (or failed) search call."""
        self.search_requests.labels(variant=variant, status=status).inc()
        self.search_duration.labels(variant=variant).observe(duration)
        if status == "ok":
            self.search_results.labels(variant=variant).observe(results_count)

    def record_embedding(self, duration: float) -> None:
        """Record query embedding latency."""
        self.embedding_duration.observe(duration)

    def record_ai_fallback(self, step: str, reason: str) -> None:
        """Record an optimizer or reranker downgrade."""
        self.ai_fallbacks.labels(step=step, reason=reason).inc()

    def get_metrics(self) -> str:
        """Return the Prometheus text exposition for this registry."""
        return generate_latest(self.registry).decode('utf-8')
