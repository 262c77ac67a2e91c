"""In-memory collaborators for testing and embedding.

These adapters implement the outbound ports without touching the
operating system: the topology and inventory are supplied up front and
written bindings are kept in a dict.

Example:
    topology = StaticTopologySource(CpuTopology.uniform(8))
    inventory = StaticDeviceInventory([DeviceDescriptor(...)])
    sink = InMemorySettingsSink()
"""

from __future__ import annotations

import copy
import logging
from typing import Iterable, Optional

from irq_affinity.domain.entities.device import DeviceBinding, DeviceDescriptor
from irq_affinity.domain.entities.topology import CcdMap, CpuTopology, build_ccd_map
from irq_affinity.domain.value_objects.identifiers import InstanceId
from irq_affinity.ports.outbound import SettingsSinkError

logger = logging.getLogger(__name__)


class StaticTopologySource:
    """Topology source returning a fixed topology."""

    def __init__(
        self,
        topology: Optional[CpuTopology],
        ccd_map: Optional[CcdMap] = None,
        derive_ccd_map: bool = False,
        pair_ccx: bool = False,
    ) -> None:
        """Initialize the source.

        Args:
            topology: Topology to report; None simulates a failed query.
            ccd_map: Explicit die map. Takes precedence over derivation.
            derive_ccd_map: Build the die map from cache domains.
            pair_ccx: Pair cache domains into dies when deriving.
        """
        self._topology = topology
        if ccd_map is not None:
            self._ccd_map = ccd_map
        elif derive_ccd_map and topology is not None:
            self._ccd_map = build_ccd_map(topology, pair_ccx=pair_ccx)
        else:
            self._ccd_map = CcdMap()

    def get_topology(self) -> Optional[CpuTopology]:
        return self._topology

    def get_ccd_map(self) -> CcdMap:
        return self._ccd_map


class StaticDeviceInventory:
    """Device inventory backed by a mutable list."""

    def __init__(self, devices: Iterable[DeviceDescriptor] = ()) -> None:
        self._devices: list[DeviceDescriptor] = list(devices)
        self.refresh_count = 0

    def list_devices(self) -> list[DeviceDescriptor]:
        self.refresh_count += 1
        return list(self._devices)

    def add(self, device: DeviceDescriptor) -> None:
        self._devices.append(device)

    def remove(self, instance_id: str) -> None:
        self._devices = [d for d in self._devices if d.instance_id != instance_id]


class InMemorySettingsSink:
    """Settings sink keeping written bindings in memory.

    Devices listed in ``failing`` raise SettingsSinkError, which lets tests
    exercise per-device fault handling.
    """

    def __init__(self, failing: Iterable[str] = ()) -> None:
        self.written: dict[InstanceId, DeviceBinding] = {}
        self.cleared: list[InstanceId] = []
        self._failing = set(failing)

    def write_binding(self, descriptor: DeviceDescriptor, binding: DeviceBinding) -> None:
        self._check(descriptor)
        self.written[descriptor.instance_id] = copy.deepcopy(binding)
        logger.debug(f"Stored binding for {descriptor.instance_id}")

    def clear_device(self, descriptor: DeviceDescriptor) -> None:
        self._check(descriptor)
        self.written.pop(descriptor.instance_id, None)
        self.cleared.append(descriptor.instance_id)

    def _check(self, descriptor: DeviceDescriptor) -> None:
        if descriptor.instance_id in self._failing:
            raise SettingsSinkError(f"Access denied for {descriptor.instance_id}")
