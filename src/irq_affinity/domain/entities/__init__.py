"""Domain entities for interrupt affinity planning.

Entities represent the core business objects:
- CpuTopology: Logical processors grouped by core and cache domain
- CcdMap: Logical processor to physical die mapping
- DeviceDescriptor: Facts about one device from the inventory
- DeviceBinding: Interrupt configuration produced for one device
"""

from irq_affinity.domain.entities.device import (
    DeviceBinding,
    DeviceDescriptor,
    DeviceKind,
    InterruptPolicy,
    InterruptPriority,
    MsiMode,
)
from irq_affinity.domain.entities.topology import (
    CcdMap,
    CpuTopology,
    LogicalProcessor,
    build_ccd_map,
)

__all__ = [
    # Devices
    "DeviceBinding",
    "DeviceDescriptor",
    "DeviceKind",
    "InterruptPolicy",
    "InterruptPriority",
    "MsiMode",
    # Topology
    "CcdMap",
    "CpuTopology",
    "LogicalProcessor",
    "build_ccd_map",
]
