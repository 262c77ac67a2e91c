"""Affinity planner domain layer."""

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
from irq_affinity.domain.services.allocation import (
    AllocationEngine,
    AllocationResult,
    AllocationSettings,
    TargetDiePolicy,
)
from irq_affinity.domain.services.classifier import DeviceRole, classify
from irq_affinity.domain.services.reset import DefaultsResetService, ResetReport
from irq_affinity.domain.value_objects.identifiers import DieId, InstanceId, ProcessorIndex

__all__ = [
    # Value objects
    "DieId",
    "InstanceId",
    "ProcessorIndex",
    # Entities
    "CcdMap",
    "CpuTopology",
    "LogicalProcessor",
    "build_ccd_map",
    "DeviceBinding",
    "DeviceDescriptor",
    "DeviceKind",
    "InterruptPolicy",
    "InterruptPriority",
    "MsiMode",
    # Services
    "AllocationEngine",
    "AllocationResult",
    "AllocationSettings",
    "TargetDiePolicy",
    "DeviceRole",
    "classify",
    "DefaultsResetService",
    "ResetReport",
]
