"""Inbound ports - interfaces offered by the affinity planner."""

from irq_affinity.ports.inbound.api import AffinityPlannerAPI

__all__ = [
    "AffinityPlannerAPI",
]
