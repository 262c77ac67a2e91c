"""Outbound ports - interfaces for external collaborators.

Outbound ports define contracts for the platform services the planner
depends on: topology discovery, device enumeration and settings
persistence.
"""

from irq_affinity.ports.outbound.sources import (
    DeviceInventorySource,
    SettingsSink,
    SettingsSinkError,
    TopologySource,
)

__all__ = [
    "DeviceInventorySource",
    "SettingsSink",
    "SettingsSinkError",
    "TopologySource",
]
