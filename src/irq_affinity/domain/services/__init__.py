"""Domain services for interrupt affinity planning.

Services implement the core workflows:
- classifier: Pure device role predicates
- AllocationEngine: Multi-phase automatic affinity allocation
- DefaultsResetService: Per-device teardown of all overrides
"""

from irq_affinity.domain.services.allocation import (
    IMOD_DEFAULT_INTERVAL,
    AllocationEngine,
    AllocationEvent,
    AllocationResult,
    AllocationSettings,
    Category,
    EventLog,
    ProcessorPools,
    TargetDiePolicy,
    resolve_pools,
)
from irq_affinity.domain.services.classifier import DeviceRole, classify
from irq_affinity.domain.services.reset import DefaultsResetService, ResetReport

__all__ = [
    "IMOD_DEFAULT_INTERVAL",
    "AllocationEngine",
    "AllocationEvent",
    "AllocationResult",
    "AllocationSettings",
    "Category",
    "EventLog",
    "ProcessorPools",
    "TargetDiePolicy",
    "resolve_pools",
    "DeviceRole",
    "classify",
    "DefaultsResetService",
    "ResetReport",
]
