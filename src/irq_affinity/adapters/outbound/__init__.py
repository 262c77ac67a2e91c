"""Outbound adapters - in-memory collaborators."""

from irq_affinity.adapters.outbound.memory import (
    InMemorySettingsSink,
    StaticDeviceInventory,
    StaticTopologySource,
)

__all__ = [
    "InMemorySettingsSink",
    "StaticDeviceInventory",
    "StaticTopologySource",
]
