"""CPU topology entities: logical processors, cores, cache domains and dies.

The topology models the processor layout reported by the platform: every
logical processor with its processor group, physical core, last-level cache
domain, NUMA node and efficiency class. Grouped views by core and by cache
domain are derived once at construction.

A die map (CcdMap) optionally assigns each logical processor to a physical
compute die on multi-die packages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from irq_affinity.domain.value_objects.identifiers import (
    UNKNOWN_LLC_KEY,
    DieId,
    group_of_key,
    make_core_key,
    make_llc_key,
)


@dataclass(frozen=True)
class LogicalProcessor:
    """A schedulable hardware thread."""
    group: int                    # Processor group
    index: int                    # Global logical-processor index
    core: int                     # Physical core id within the group
    llc: int                      # Last-level cache domain (-1 = unknown)
    numa: int                     # NUMA node
    efficiency_class: int = 0     # 0 = performance, >0 = efficiency
    local_index: int = -1         # Index within the processor group
    cpu_set_id: int = -1          # OS CPU-set identifier

    @property
    def is_efficiency(self) -> bool:
        return self.efficiency_class > 0


class CpuTopology:
    """Logical processors grouped by physical core and cache domain."""

    def __init__(self, processors: Iterable[LogicalProcessor]) -> None:
        self._processors: list[LogicalProcessor] = sorted(processors, key=lambda lp: lp.index)
        self._by_index: dict[int, LogicalProcessor] = {lp.index: lp for lp in self._processors}

        # Filled in index order, so each group list is sorted ascending
        self.by_core: dict[int, list[LogicalProcessor]] = {}
        self.by_llc: dict[int, list[LogicalProcessor]] = {}
        for lp in self._processors:
            self.by_core.setdefault(make_core_key(lp.group, lp.core), []).append(lp)
            self.by_llc.setdefault(make_llc_key(lp.group, lp.llc), []).append(lp)

    @classmethod
    def uniform(cls, count: int) -> CpuTopology:
        """Flat topology used when only the processor count is known.

        Every logical processor is its own performance core in group 0.
        """
        return cls(
            LogicalProcessor(
                group=0,
                index=i,
                core=i,
                llc=0,
                numa=0,
                efficiency_class=0,
                local_index=i,
                cpu_set_id=i,
            )
            for i in range(count)
        )

    @property
    def processors(self) -> list[LogicalProcessor]:
        return list(self._processors)

    @property
    def logical_count(self) -> int:
        """Total number of logical processors."""
        return len(self._processors)

    @property
    def physical_core_count(self) -> int:
        """Total number of physical cores."""
        return len(self.by_core)

    @property
    def group_count(self) -> int:
        return max(1, len({lp.group for lp in self._processors}))

    @property
    def has_smt(self) -> bool:
        """True when any core exposes more than one logical processor."""
        return any(len(group) > 1 for group in self.by_core.values())

    def is_empty(self) -> bool:
        return not self._processors

    def get(self, index: int) -> Optional[LogicalProcessor]:
        return self._by_index.get(index)

    def is_smt_sibling(self, index: int) -> bool:
        """True for a non-primary thread of a multi-threaded core."""
        lp = self._by_index.get(index)
        if lp is None:
            return False
        group = self.by_core[make_core_key(lp.group, lp.core)]
        return len(group) > 1 and group[0].index != index

    def primary_per_core(self) -> tuple[list[int], list[int]]:
        """Lowest-indexed logical processor of each core, split by class.

        Returns:
            (performance, efficiency) processor indices, each sorted
            ascending. Only one representative per core is returned so
            that SMT siblings are never double-booked.
        """
        performance: list[int] = []
        efficiency: list[int] = []
        for key in sorted(self.by_core):
            group = self.by_core[key]
            if not group:
                continue
            primary = group[0]
            if primary.is_efficiency:
                efficiency.append(primary.index)
            else:
                performance.append(primary.index)
        return sorted(performance), sorted(efficiency)

    def performance_processors(self, restrict_to: Optional[Iterable[int]] = None) -> list[int]:
        """All logical processors with efficiency class 0, sorted."""
        return self._by_class(efficiency=False, restrict_to=restrict_to)

    def efficiency_processors(self, restrict_to: Optional[Iterable[int]] = None) -> list[int]:
        """All logical processors with efficiency class > 0, sorted."""
        return self._by_class(efficiency=True, restrict_to=restrict_to)

    def _by_class(self, efficiency: bool, restrict_to: Optional[Iterable[int]]) -> list[int]:
        allowed = set(restrict_to) if restrict_to is not None else None
        return [
            lp.index
            for lp in self._processors
            if lp.is_efficiency == efficiency and (allowed is None or lp.index in allowed)
        ]

    def __len__(self) -> int:
        return len(self._processors)

    def __repr__(self) -> str:
        return (
            f"CpuTopology(logical={self.logical_count}, "
            f"cores={self.physical_core_count}, groups={self.group_count})"
        )


@dataclass
class CcdMap:
    """Logical processor index -> physical die id.

    Empty when the package has a single die or the mapping is unknown.
    """
    dies: dict[int, DieId] = field(default_factory=dict)

    @property
    def die_ids(self) -> list[DieId]:
        """Distinct die ids, ascending."""
        return sorted(set(self.dies.values()))

    @property
    def is_multi_die(self) -> bool:
        return len(set(self.dies.values())) >= 2

    def die_of(self, index: int) -> Optional[DieId]:
        return self.dies.get(index)

    def processors_on(self, die: int) -> list[int]:
        """Logical processors on a die, ascending."""
        return sorted(lp for lp, d in self.dies.items() if d == die)

    def __len__(self) -> int:
        return len(self.dies)


def build_ccd_map(topology: CpuTopology, pair_ccx: bool = False) -> CcdMap:
    """Derive a die map from the topology's cache domains.

    Each known cache domain becomes one die, in key order. When the cache
    layout is unknown, or every processor reports its own cache domain,
    everything is placed on die 0.

    Args:
        topology: Processor topology.
        pair_ccx: Combine consecutive cache domains of each processor group
            in pairs. Used for parts whose dies carry two core complexes
            with separate last-level caches. Ignored unless every
            processor group has an even number of cache domains.

    Returns:
        The derived CcdMap.
    """
    dies: dict[int, DieId] = {}
    llc_groups = sorted(
        (key, group) for key, group in topology.by_llc.items() if key != UNKNOWN_LLC_KEY
    )

    per_lp_llc = (
        len(llc_groups) == topology.logical_count
        and all(len(group) == 1 for _, group in llc_groups)
    )
    if not llc_groups or per_lp_llc:
        for lp in topology.processors:
            dies.setdefault(lp.index, DieId(0))
        return CcdMap(dies)

    by_group: dict[int, list[tuple[int, list[LogicalProcessor]]]] = {}
    for key, group in llc_groups:
        by_group.setdefault(group_of_key(key), []).append((key, group))

    if pair_ccx and all(len(domains) % 2 == 0 for domains in by_group.values()):
        base = 0
        for cpu_group in sorted(by_group):
            domains = by_group[cpu_group]
            for position, (_, group) in enumerate(domains):
                for lp in group:
                    dies.setdefault(lp.index, DieId(base + position // 2))
            base += len(domains) // 2
        return CcdMap(dies)

    for die, (_, group) in enumerate(llc_groups):
        for lp in group:
            dies.setdefault(lp.index, DieId(die))
    return CcdMap(dies)
