"""Device entities: the inventory descriptor and the binding record.

A DeviceDescriptor carries the immutable facts collected about a device.
A DeviceBinding is the mutable interrupt configuration the allocation engine
produces for it. Bindings are plain data: the engine writes them, the
persistence and presentation collaborators only read them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from irq_affinity.domain.value_objects.identifiers import InstanceId


class DeviceKind(Enum):
    """Coarse device category reported by the inventory."""
    USB = "usb"
    GPU = "gpu"
    AUDIO = "audio"
    WIRED_NET = "wired_net"
    WIFI_NET = "wifi_net"
    STORAGE = "storage"
    OTHER = "other"


class InterruptPolicy(Enum):
    """Interrupt affinity policy."""
    MACHINE_DEFAULT = "MachineDefault"
    SPECIFIC_CPU = "SpecCPU"


class MsiMode(Enum):
    """Message-signaled interrupt mode."""
    ENABLED = "Enabled"
    DISABLED = "Disabled"


class InterruptPriority(Enum):
    """Interrupt scheduling priority."""
    NORMAL = "Normal"
    HIGH = "High"


@dataclass(frozen=True)
class DeviceDescriptor:
    """Immutable facts about one device."""
    instance_id: InstanceId
    name: str
    kind: DeviceKind
    device_class: str = ""
    usb_roles: str = ""           # e.g., "Keyboard,Mouse"
    audio_endpoints: str = ""     # e.g., "Speakers, Headphones"
    wifi: bool = False
    usb_is_xhci: bool = False     # High-speed (xHCI) host controller
    usb_has_devices: bool = False
    policy_locked: bool = False   # Interrupt policy is not user-selectable


@dataclass
class DeviceBinding:
    """Interrupt configuration for one device."""
    instance_id: InstanceId
    selected: set[int] = field(default_factory=set)
    affinity_mask: int = 0
    policy: InterruptPolicy = InterruptPolicy.MACHINE_DEFAULT
    msi: MsiMode = MsiMode.DISABLED
    priority: InterruptPriority = InterruptPriority.NORMAL
    limit: int = 0                          # Message number limit (0 = unlimited)
    imod_interval: Optional[int] = None     # xHCI interrupt moderation interval
    imod_auto: bool = False                 # Moderation interval managed automatically
    rss_base_processor: Optional[int] = None
    rss_queues: Optional[int] = None

    @classmethod
    def for_device(cls, descriptor: DeviceDescriptor) -> DeviceBinding:
        return cls(instance_id=descriptor.instance_id)

    def snapshot(self) -> tuple:
        """Comparable view of every field, used to check run-to-run stability."""
        return (
            self.instance_id,
            tuple(sorted(self.selected)),
            self.affinity_mask,
            self.policy,
            self.msi,
            self.priority,
            self.limit,
            self.imod_interval,
            self.imod_auto,
            self.rss_base_processor,
            self.rss_queues,
        )
