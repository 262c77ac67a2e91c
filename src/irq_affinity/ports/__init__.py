"""Ports layer - interface definitions following Hexagonal Architecture.

- Inbound ports: API offered to callers (AffinityPlannerAPI)
- Outbound ports: Collaborators the planner depends on (topology,
  device inventory, settings persistence)
"""

from irq_affinity.ports.inbound import AffinityPlannerAPI
from irq_affinity.ports.outbound import (
    DeviceInventorySource,
    SettingsSink,
    SettingsSinkError,
    TopologySource,
)

__all__ = [
    # Inbound ports
    "AffinityPlannerAPI",
    # Outbound ports
    "DeviceInventorySource",
    "SettingsSink",
    "SettingsSinkError",
    "TopologySource",
]
