"""Type-safe identifiers and packed topology keys.

Value objects use NewType for zero-runtime-overhead type safety. Group keys
pack a processor group and a per-group id into one 32-bit value so that
cores and cache domains stay unique across processor groups.
"""

from __future__ import annotations

from typing import Iterable, NewType

# Stable device instance identifier (e.g., "PCI\\VEN_10DE&DEV_2684\\4&1A2B")
InstanceId = NewType("InstanceId", str)

# Global logical-processor index
ProcessorIndex = NewType("ProcessorIndex", int)

# Physical compute die (CCD) identifier
DieId = NewType("DieId", int)

# Cache domain id of "unknown" maps here; never produced by make_group_key
UNKNOWN_LLC_KEY = -1


def make_group_key(group: int, value: int) -> int:
    """Pack a processor group and an id into a single 32-bit key."""
    return ((group & 0xFFFF) << 16) | (value & 0xFFFF)


def make_core_key(group: int, core: int) -> int:
    """Key identifying a physical core across processor groups."""
    return make_group_key(group, core)


def make_llc_key(group: int, llc: int) -> int:
    """Key identifying a cache domain; negative ids map to UNKNOWN_LLC_KEY."""
    if llc < 0:
        return UNKNOWN_LLC_KEY
    return make_group_key(group, llc)


def group_of_key(key: int) -> int:
    """Recover the processor group from a packed key."""
    return (key >> 16) & 0xFFFF


def affinity_mask(processors: Iterable[int]) -> int:
    """Build an affinity bitmask: bit i is set iff processor i is present.

    Python ints are unbounded, so masks for machines with more than 64
    logical processors are represented without truncation.
    """
    mask = 0
    for lp in processors:
        if lp >= 0:
            mask |= 1 << lp
    return mask


def mask_to_processors(mask: int) -> list[int]:
    """Expand an affinity bitmask to the sorted list of set bit indices."""
    processors = []
    index = 0
    while mask:
        if mask & 1:
            processors.append(index)
        mask >>= 1
        index += 1
    return processors


def format_mask(mask: int) -> str:
    return f"0x{mask:X}"
