"""Unit tests for topology entities, packed keys and die map derivation."""

import pytest

from factories import smt_topology
from irq_affinity.domain.entities.topology import CcdMap, CpuTopology, LogicalProcessor, build_ccd_map
from irq_affinity.domain.value_objects.identifiers import (
    UNKNOWN_LLC_KEY,
    affinity_mask,
    format_mask,
    group_of_key,
    make_core_key,
    make_group_key,
    make_llc_key,
    mask_to_processors,
)


def create_llc_topology(llc_of: list[int], group_of: list[int] | None = None) -> CpuTopology:
    """One single-threaded core per LP, cache domains given per LP."""
    group_of = group_of or [0] * len(llc_of)
    return CpuTopology(
        LogicalProcessor(group=group_of[i], index=i, core=i, llc=llc, numa=0)
        for i, llc in enumerate(llc_of)
    )


@pytest.mark.unit
class TestIdentifiers:
    """Test packed keys and affinity masks."""

    def test_group_key_packing(self):
        """Group goes in the high half, id in the low half."""
        assert make_group_key(0, 5) == 5
        assert make_group_key(1, 3) == 0x10003
        assert group_of_key(make_group_key(2, 7)) == 2

    def test_keys_unique_across_groups(self):
        """The same core id in two groups yields different keys."""
        assert make_core_key(0, 1) != make_core_key(1, 1)

    def test_unknown_llc_maps_to_sentinel(self):
        """Negative cache ids collapse to the unknown key."""
        assert make_llc_key(0, -1) == UNKNOWN_LLC_KEY
        assert make_llc_key(3, -5) == UNKNOWN_LLC_KEY
        assert make_llc_key(0, 0) != UNKNOWN_LLC_KEY

    def test_affinity_mask(self):
        """Bit i is set iff processor i is present."""
        assert affinity_mask([]) == 0
        assert affinity_mask([0, 2]) == 0b101
        assert affinity_mask({6}) == 0x40

    def test_mask_wider_than_64_bits(self):
        """Processors past 63 are kept."""
        mask = affinity_mask([1, 70])
        assert mask == (1 << 70) | 2
        assert mask_to_processors(mask) == [1, 70]

    def test_format_mask(self):
        """Masks render as upper-case hex."""
        assert format_mask(0) == "0x0"
        assert format_mask(0x50) == "0x50"


@pytest.mark.unit
class TestCpuTopology:
    """Test grouped topology views."""

    def test_smt_grouping(self):
        """SMT siblings share a core group."""
        topology = smt_topology(cores=4)
        assert topology.logical_count == 8
        assert topology.physical_core_count == 4
        assert topology.has_smt is True
        assert [lp.index for lp in topology.by_core[make_core_key(0, 1)]] == [2, 3]

    def test_primary_per_core_smt(self):
        """Only the lowest-indexed thread of each core is returned."""
        performance, efficiency = smt_topology(cores=4).primary_per_core()
        assert performance == [0, 2, 4, 6]
        assert efficiency == []

    def test_primary_per_core_hybrid(self, hybrid_topology):
        """Efficiency cores land in the second list."""
        performance, efficiency = hybrid_topology.primary_per_core()
        assert performance == [0, 2, 4, 6]
        assert efficiency == [8, 9, 10, 11]

    def test_processor_class_lists(self, hybrid_topology):
        """All-thread lists include SMT siblings and honour restriction."""
        assert hybrid_topology.performance_processors() == list(range(8))
        assert hybrid_topology.efficiency_processors() == [8, 9, 10, 11]
        assert hybrid_topology.performance_processors(restrict_to=[1, 2, 9]) == [1, 2]

    def test_smt_sibling(self):
        """The second thread of a core is a sibling, the first is not."""
        topology = smt_topology(cores=2)
        assert topology.is_smt_sibling(0) is False
        assert topology.is_smt_sibling(1) is True
        assert topology.is_smt_sibling(99) is False

    def test_cores_distinct_across_groups(self):
        """Core 0 of group 0 and core 0 of group 1 are different cores."""
        topology = CpuTopology([
            LogicalProcessor(group=0, index=0, core=0, llc=0, numa=0),
            LogicalProcessor(group=1, index=1, core=0, llc=0, numa=1),
        ])
        assert topology.physical_core_count == 2
        assert topology.group_count == 2
        assert topology.primary_per_core() == ([0, 1], [])

    def test_uniform(self):
        """Uniform topology has one performance core per LP."""
        topology = CpuTopology.uniform(6)
        assert len(topology) == 6
        assert topology.has_smt is False
        assert topology.primary_per_core() == ([0, 1, 2, 3, 4, 5], [])

    def test_empty(self):
        """An empty topology reports no processors."""
        topology = CpuTopology([])
        assert topology.is_empty()
        assert topology.primary_per_core() == ([], [])
        assert topology.get(0) is None

    def test_unsorted_input(self):
        """Processors are ordered by index regardless of input order."""
        topology = CpuTopology([
            LogicalProcessor(group=0, index=1, core=0, llc=0, numa=0),
            LogicalProcessor(group=0, index=0, core=0, llc=0, numa=0),
        ])
        assert [lp.index for lp in topology.processors] == [0, 1]
        assert topology.primary_per_core() == ([0], [])


@pytest.mark.unit
class TestCcdMap:
    """Test die map queries and derivation."""

    def test_single_die(self):
        """One distinct die is not multi-die."""
        ccd_map = CcdMap({0: 0, 1: 0})
        assert ccd_map.is_multi_die is False
        assert ccd_map.die_ids == [0]

    def test_empty_map(self):
        """An empty map is not multi-die."""
        assert CcdMap().is_multi_die is False
        assert len(CcdMap()) == 0

    def test_processors_on(self):
        """Processors of a die come back sorted."""
        ccd_map = CcdMap({3: 1, 0: 0, 2: 1, 1: 0})
        assert ccd_map.is_multi_die is True
        assert ccd_map.processors_on(1) == [2, 3]
        assert ccd_map.die_of(0) == 0
        assert ccd_map.die_of(9) is None

    def test_one_die_per_cache_domain(self):
        """Each cache domain becomes a die in key order."""
        topology = create_llc_topology([0, 0, 0, 1, 1, 1])
        ccd_map = build_ccd_map(topology)
        assert ccd_map.dies == {0: 0, 1: 0, 2: 0, 3: 1, 4: 1, 5: 1}

    def test_per_processor_cache_collapses(self):
        """Every LP reporting its own cache domain means the layout is unusable."""
        topology = create_llc_topology([0, 1, 2, 3])
        ccd_map = build_ccd_map(topology)
        assert ccd_map.die_ids == [0]
        assert len(ccd_map) == 4

    def test_unknown_cache_layout(self):
        """No known cache domain puts everything on die 0."""
        topology = create_llc_topology([-1, -1, -1])
        assert build_ccd_map(topology).dies == {0: 0, 1: 0, 2: 0}

    def test_pair_ccx(self):
        """Pairs of cache domains share a die."""
        topology = create_llc_topology([0, 0, 1, 1, 2, 2, 3, 3])
        ccd_map = build_ccd_map(topology, pair_ccx=True)
        assert ccd_map.processors_on(0) == [0, 1, 2, 3]
        assert ccd_map.processors_on(1) == [4, 5, 6, 7]

    def test_pair_ccx_odd_domains_ignored(self):
        """Pairing is skipped when a group has an odd number of domains."""
        topology = create_llc_topology([0, 0, 1, 1, 2, 2])
        ccd_map = build_ccd_map(topology, pair_ccx=True)
        assert ccd_map.die_ids == [0, 1, 2]

    def test_pair_ccx_across_groups(self):
        """Die ids continue from one processor group to the next."""
        topology = create_llc_topology(
            [0, 0, 1, 1, 0, 0, 1, 1],
            group_of=[0, 0, 0, 0, 1, 1, 1, 1],
        )
        ccd_map = build_ccd_map(topology, pair_ccx=True)
        assert ccd_map.processors_on(0) == [0, 1, 2, 3]
        assert ccd_map.processors_on(1) == [4, 5, 6, 7]
