"""Prometheus metrics for the affinity planner."""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, Info, start_http_server


class MetricsRegistry:
    """Allocation and reset metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry if registry is not None else REGISTRY

        self.allocation_runs_total = Counter(
            "irq_allocation_runs_total", "Allocation runs by outcome", ["outcome"], registry=self._registry
        )
        self.allocation_latency_seconds = Histogram(
            "irq_allocation_latency_seconds",
            "Allocation run latency",
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1),
            registry=self._registry,
        )
        self.bound_devices = Gauge(
            "irq_bound_devices", "Devices pinned to specific processors", ["category"], registry=self._registry
        )
        self.consumed_processors = Gauge(
            "irq_consumed_processors", "Processors handed out by the last run", registry=self._registry
        )
        self.reset_failures_total = Counter(
            "irq_reset_failures_total", "Devices that failed to reset", registry=self._registry
        )

        self.info = Info("irq_affinity", "Planner info", registry=self._registry)

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8010, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """Create the process-wide metrics and expose them over HTTP.

    Collectors can only be registered once per registry, so later calls
    return the metrics created by the first one.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry(registry)
        start_http_server(port, registry=_metrics.registry)
    return _metrics
