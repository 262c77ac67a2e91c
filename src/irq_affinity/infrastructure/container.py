"""Dependency injection container for the affinity planner."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog
from opentelemetry import trace

from irq_affinity import __version__
from irq_affinity.application.coordinator import AffinityCoordinator
from irq_affinity.domain.entities.topology import CcdMap, CpuTopology, build_ccd_map
from irq_affinity.domain.services.allocation import AllocationEngine
from irq_affinity.infrastructure.config import Config, get_config
from irq_affinity.infrastructure.logging import setup_logging
from irq_affinity.infrastructure.metrics import MetricsRegistry, setup_metrics
from irq_affinity.infrastructure.tracing import setup_tracing
from irq_affinity.ports.outbound import DeviceInventorySource, SettingsSink, TopologySource


@dataclass
class Container:
    """Dependency injection container for planner components."""

    config: Config
    logger: structlog.stdlib.BoundLogger
    tracer: trace.Tracer
    metrics: Optional[MetricsRegistry]

    _instance: "Container | None" = None

    @classmethod
    def create(cls) -> "Container":
        """Create and initialize the container with all dependencies."""
        if cls._instance is not None:
            return cls._instance

        config = get_config()
        logger = setup_logging(config)
        tracer = setup_tracing(config)
        metrics = None
        if config.observability.enable_metrics:
            metrics = setup_metrics(config.observability.metrics_port)
            metrics.info.info(
                {"version": __version__, "environment": config.observability.environment}
            )

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
        )

        logger.info(
            "irq_affinity_container_initialized",
            environment=config.observability.environment,
        )

        return cls._instance

    @classmethod
    def get(cls) -> "Container":
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None

    def create_engine(self) -> AllocationEngine:
        return AllocationEngine(self.config.allocation.to_settings())

    def derive_ccd_map(self, topology: CpuTopology) -> CcdMap:
        """Die map from cache domains, paired per the topology config."""
        return build_ccd_map(topology, pair_ccx=self.config.topology.pair_ccx)

    def create_coordinator(
        self,
        topology_source: TopologySource,
        inventory: DeviceInventorySource,
        sink: Optional[SettingsSink] = None,
    ) -> AffinityCoordinator:
        """Build a coordinator wired to the configured engine and telemetry."""
        return AffinityCoordinator(
            topology_source=topology_source,
            inventory=inventory,
            engine=self.create_engine(),
            sink=sink,
            metrics=self.metrics,
            tracer=self.tracer,
        )


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()
