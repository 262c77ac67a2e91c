"""Application layer for the affinity planner.

Orchestrates domain services to provide high-level functionality.
"""

from irq_affinity.application.coordinator import AffinityCoordinator

__all__ = [
    "AffinityCoordinator",
]
