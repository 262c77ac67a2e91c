"""Domain value objects for interrupt affinity planning.

Value objects are immutable objects without identity that represent
core concepts like device instance ids, processor indices and the packed
core/cache-domain keys of the CPU topology.
"""

from irq_affinity.domain.value_objects.identifiers import (
    UNKNOWN_LLC_KEY,
    DieId,
    InstanceId,
    ProcessorIndex,
    affinity_mask,
    format_mask,
    group_of_key,
    make_core_key,
    make_group_key,
    make_llc_key,
    mask_to_processors,
)

__all__ = [
    "UNKNOWN_LLC_KEY",
    "DieId",
    "InstanceId",
    "ProcessorIndex",
    "affinity_mask",
    "format_mask",
    "group_of_key",
    "make_core_key",
    "make_group_key",
    "make_llc_key",
    "mask_to_processors",
]
