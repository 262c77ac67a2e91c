"""Reset-to-defaults sweep.

Tears down every device override: persisted settings are cleared through
the settings sink and bindings return to machine defaults. Unlike the
allocation engine this is a flat per-device loop; a failure on one device
is logged and the sweep continues with the next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from irq_affinity.domain.entities.device import (
    DeviceBinding,
    DeviceDescriptor,
    InterruptPolicy,
    InterruptPriority,
)
from irq_affinity.domain.services import classifier
from irq_affinity.domain.services.allocation import (
    IMOD_DEFAULT_INTERVAL,
    AllocationEvent,
    EventLog,
)
from irq_affinity.domain.value_objects.identifiers import InstanceId

if TYPE_CHECKING:
    from irq_affinity.ports.outbound.sources import SettingsSink

logger = logging.getLogger(__name__)


@dataclass
class ResetReport:
    """Outcome of a reset sweep."""
    events: list[AllocationEvent] = field(default_factory=list)
    reset: list[InstanceId] = field(default_factory=list)
    failed: dict[InstanceId, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed


class DefaultsResetService:
    """Clears all device overrides, one device at a time."""

    def __init__(
        self,
        sink: Optional[SettingsSink] = None,
        imod_default_interval: int = IMOD_DEFAULT_INTERVAL,
    ) -> None:
        self._sink = sink
        self._imod_default_interval = imod_default_interval

    def reset_all(
        self,
        devices: list[DeviceDescriptor],
        bindings: dict[InstanceId, DeviceBinding],
    ) -> ResetReport:
        """Reset every device to machine defaults.

        MSI mode is left as it is; only affinity, priority, limit, RSS and
        moderation settings are reverted.
        """
        log = EventLog()
        report = ResetReport()
        log.record("RESET", f"full reset requested devices={len(devices)}")

        for device in devices:
            try:
                if self._sink is not None:
                    self._sink.clear_device(device)
                binding = bindings.get(device.instance_id)
                if binding is None:
                    binding = DeviceBinding.for_device(device)
                    bindings[device.instance_id] = binding
                self._reset_binding(device, binding, log)
                report.reset.append(device.instance_id)
            except Exception as exc:
                logger.exception(f"Reset failed for {device.instance_id}")
                log.record("RESET.ERROR", f"{device.instance_id} -> {exc}", level=logging.ERROR)
                report.failed[device.instance_id] = str(exc)

        log.record("RESET", f"done reset={len(report.reset)} failed={len(report.failed)}")
        report.events = log.events
        return report

    def _reset_binding(self, device: DeviceDescriptor, binding: DeviceBinding, log: EventLog) -> None:
        binding.selected.clear()
        binding.affinity_mask = 0
        binding.policy = InterruptPolicy.MACHINE_DEFAULT
        binding.priority = InterruptPriority.NORMAL
        binding.limit = 0
        binding.rss_base_processor = None
        binding.rss_queues = None
        log.record(
            "RESET",
            f"{device.instance_id} kind={device.kind.name} -> cleared priority/affinity "
            f"(MSI left unchanged)",
        )

        if classifier.is_imod_target(device):
            before = binding.imod_interval
            binding.imod_interval = self._imod_default_interval
            binding.imod_auto = False
            log.record(
                "RESET.IMOD.USB",
                f"{device.instance_id} {before} -> 0x{self._imod_default_interval:X}",
            )
