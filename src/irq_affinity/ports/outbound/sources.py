"""Outbound ports for the platform collaborators.

The planner never talks to the operating system itself. Topology
discovery, device enumeration and settings persistence are supplied
through these protocols.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Optional, Protocol

from irq_affinity.domain.entities.device import DeviceBinding, DeviceDescriptor
from irq_affinity.domain.entities.topology import CcdMap, CpuTopology


class SettingsSinkError(Exception):
    """Writing or clearing persisted device settings failed."""
    pass


class TopologySource(Protocol):
    """Supplies the processor topology discovered on the machine."""

    @abstractmethod
    def get_topology(self) -> Optional[CpuTopology]:
        """Return the current topology, or None when it cannot be read."""
        ...

    @abstractmethod
    def get_ccd_map(self) -> CcdMap:
        """Return the processor-to-die map (empty on single-die parts)."""
        ...


class DeviceInventorySource(Protocol):
    """Supplies the interrupt-capable devices present on the machine."""

    @abstractmethod
    def list_devices(self) -> list[DeviceDescriptor]:
        """Enumerate devices.

        Called once per allocation run; the result is treated as a
        snapshot for the duration of that run.
        """
        ...


class SettingsSink(Protocol):
    """Consumes finished bindings (registry, config files, UI state).

    Thread Safety:
        Calls are made from a single thread per run.
    """

    @abstractmethod
    def write_binding(self, descriptor: DeviceDescriptor, binding: DeviceBinding) -> None:
        """Persist the binding of one device.

        Raises:
            SettingsSinkError: If the write fails.
        """
        ...

    @abstractmethod
    def clear_device(self, descriptor: DeviceDescriptor) -> None:
        """Remove every persisted override of one device.

        Raises:
            SettingsSinkError: If the device settings cannot be cleared.
        """
        ...
