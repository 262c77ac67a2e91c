"""Inbound port interfaces for the affinity planner.

Inbound ports define what the planner offers to its callers, such as a
settings window or a command-line tool.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from irq_affinity.domain.value_objects.identifiers import InstanceId

if TYPE_CHECKING:
    from irq_affinity.domain.entities.device import DeviceBinding
    from irq_affinity.domain.services.allocation import AllocationResult
    from irq_affinity.domain.services.reset import ResetReport


class AffinityPlannerAPI(Protocol):
    """Main API offered by the affinity planner."""

    def plan(self) -> AllocationResult:
        """Run automatic allocation over the current inventory.

        Returns:
            AllocationResult with one binding per device and the decision log.
        """
        ...

    def apply(self, result: AllocationResult) -> list[InstanceId]:
        """Hand finished bindings to the settings sink.

        Args:
            result: Result of a previous plan() call.

        Returns:
            Instance ids whose bindings were written.
        """
        ...

    def reset_to_defaults(self) -> ResetReport:
        """Clear every device override.

        Returns:
            Report of reset and failed devices.
        """
        ...

    def get_binding(self, instance_id: InstanceId) -> DeviceBinding | None:
        """Get the current binding of a device, or None if unknown."""
        ...
