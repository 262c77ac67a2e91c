"""Affinity planner application coordinator.

Owns the binding arena and wires the outbound collaborators to the
allocation engine and the reset sweep. Implements AffinityPlannerAPI.

Invocations are serialized: the engine must never run while another run
(or a reset) is mutating the same bindings.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from opentelemetry import trace

from irq_affinity.domain.entities.device import DeviceBinding, DeviceDescriptor
from irq_affinity.domain.services.allocation import AllocationEngine, AllocationResult, Category
from irq_affinity.domain.services.reset import DefaultsResetService, ResetReport
from irq_affinity.domain.value_objects.identifiers import InstanceId
from irq_affinity.infrastructure.metrics import MetricsRegistry
from irq_affinity.ports.outbound import (
    DeviceInventorySource,
    SettingsSink,
    SettingsSinkError,
    TopologySource,
)

logger = logging.getLogger(__name__)


class AffinityCoordinator:
    """Coordinates allocation runs, persistence hand-off and resets."""

    def __init__(
        self,
        topology_source: TopologySource,
        inventory: DeviceInventorySource,
        engine: Optional[AllocationEngine] = None,
        sink: Optional[SettingsSink] = None,
        metrics: Optional[MetricsRegistry] = None,
        tracer: Optional[trace.Tracer] = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            topology_source: Supplies the CPU topology and die map.
            inventory: Supplies device descriptors, refreshed on every run.
            engine: Allocation engine (default settings when omitted).
            sink: Receives bindings on apply() and clears on reset.
            metrics: Prometheus metrics registry.
            tracer: OpenTelemetry tracer; the global tracer when omitted.
        """
        self._topology_source = topology_source
        self._inventory = inventory
        self._engine = engine or AllocationEngine()
        self._sink = sink
        self._metrics = metrics
        self._tracer = tracer or trace.get_tracer(__name__)

        self._bindings: dict[InstanceId, DeviceBinding] = {}
        self._devices: dict[InstanceId, DeviceDescriptor] = {}
        self._lock = threading.Lock()

    def plan(self) -> AllocationResult:
        """Refresh the inventory and run automatic allocation."""
        with self._lock:
            devices = self._inventory.list_devices()
            topology = self._topology_source.get_topology()
            ccd_map = self._topology_source.get_ccd_map()

            present = {d.instance_id for d in devices}
            for instance_id in [iid for iid in self._bindings if iid not in present]:
                del self._bindings[instance_id]
            self._devices = {d.instance_id: d for d in devices}

            started = time.perf_counter()
            with self._tracer.start_as_current_span(
                "allocation.plan",
                attributes={
                    "allocation.devices": len(devices),
                    "allocation.logical_processors": topology.logical_count if topology else 0,
                },
            ) as span:
                result = self._engine.run(topology, ccd_map, devices, self._bindings)
                span.set_attribute("allocation.outcome", self._outcome(result))
                span.set_attribute("allocation.events", len(result.events))
            elapsed = time.perf_counter() - started

            logger.info(
                f"Allocation finished outcome={self._outcome(result)} "
                f"devices={len(devices)} events={len(result.events)}"
            )
            self._record_metrics(result, elapsed)
            return result

    def apply(self, result: AllocationResult) -> list[InstanceId]:
        """Write every binding of ``result`` to the settings sink.

        A device whose write fails is logged and skipped.
        """
        if self._sink is None:
            raise RuntimeError("No settings sink configured")

        written: list[InstanceId] = []
        with self._lock:
            for instance_id, binding in result.bindings.items():
                descriptor = self._devices.get(instance_id)
                if descriptor is None:
                    continue
                try:
                    self._sink.write_binding(descriptor, binding)
                    written.append(instance_id)
                except SettingsSinkError as e:
                    logger.error(f"Failed to write settings for {instance_id}: {e}")
        return written

    def reset_to_defaults(self) -> ResetReport:
        """Clear all overrides of every device in the inventory."""
        with self._lock:
            devices = self._inventory.list_devices()
            self._devices = {d.instance_id: d for d in devices}
            service = DefaultsResetService(self._sink, self._engine.settings.imod_default_interval)
            report = service.reset_all(devices, self._bindings)

        if self._metrics and report.failed:
            self._metrics.reset_failures_total.inc(len(report.failed))
        return report

    def set_imod_auto(self, instance_id: InstanceId, enabled: bool = True) -> None:
        """Let the next run manage the moderation interval of a controller."""
        with self._lock:
            binding = self._bindings.get(instance_id)
            if binding is None:
                binding = DeviceBinding(instance_id=instance_id)
                self._bindings[instance_id] = binding
            binding.imod_auto = enabled

    def get_binding(self, instance_id: InstanceId) -> Optional[DeviceBinding]:
        with self._lock:
            return self._bindings.get(instance_id)

    def bindings(self) -> dict[InstanceId, DeviceBinding]:
        with self._lock:
            return dict(self._bindings)

    @staticmethod
    def _outcome(result: AllocationResult) -> str:
        if result.error:
            return "error"
        if result.skipped:
            return "skipped"
        if result.aborted:
            return "aborted"
        return "success"

    def _record_metrics(self, result: AllocationResult, elapsed: float) -> None:
        if not self._metrics:
            return
        self._metrics.allocation_runs_total.labels(outcome=self._outcome(result)).inc()
        self._metrics.allocation_latency_seconds.observe(elapsed)
        for category in Category:
            self._metrics.bound_devices.labels(category=category.value).set(
                len(result.devices_in(category))
            )
        consumed = set()
        for instance_id in result.categories:
            consumed.update(result.bindings[instance_id].selected)
        self._metrics.consumed_processors.set(len(consumed))
