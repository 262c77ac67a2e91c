"""Automatic interrupt affinity allocation.

The engine turns a CPU topology and a device inventory into one
DeviceBinding per device. It runs a single synchronous pass over ordered
phases that share one set of consumed logical processors:

0. Reset: every binding returns to defaults (Wi-Fi keeps affinity/limit)
   followed by die restriction of the processor pools and xHCI interrupt
   moderation for controllers with automatic moderation enabled
1. Real audio: efficiency cores first, speakers heuristic, then performance
2. USB microphone-only devices: share the microphone anchor from phase 1
3. USB HID devices: one performance core each, avoiding core 0
4. GPUs: an adjacent pair of performance cores shared by all GPUs
5. Wired NICs: one performance core shared by all wired adapters

A processor taken in one phase is never handed to a device of another
phase. Within the GPU and wired NIC phases every device receives the same
processors. Pools hold one primary logical processor per physical core so
SMT siblings are not double-booked.

The consumed set lives only for one invocation; since phase 0 resets all
bindings, running twice on unchanged input reproduces identical bindings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from irq_affinity.domain.entities.device import (
    DeviceBinding,
    DeviceDescriptor,
    DeviceKind,
    InterruptPolicy,
    InterruptPriority,
    MsiMode,
)
from irq_affinity.domain.entities.topology import CcdMap, CpuTopology
from irq_affinity.domain.services import classifier
from irq_affinity.domain.value_objects.identifiers import (
    DieId,
    InstanceId,
    affinity_mask,
    format_mask,
)

logger = logging.getLogger(__name__)

# xHCI IMODI default: 0xC8 * 250ns = 50us
IMOD_DEFAULT_INTERVAL = 0xC8


class TargetDiePolicy(Enum):
    """Which die receives device interrupts on multi-die packages."""
    HIGHEST = "highest"
    LOWEST = "lowest"


class Category(Enum):
    """Allocation phase a device was served by."""
    AUDIO = "AUDIO"
    MICROPHONE = "MIC"
    HID = "HID"
    GPU = "GPU"
    NET = "NET"


@dataclass(frozen=True)
class AllocationSettings:
    """Tunable constants of the allocation heuristic."""
    imod_default_interval: int = IMOD_DEFAULT_INTERVAL
    target_die: TargetDiePolicy = TargetDiePolicy.HIGHEST
    speakers_primary_lp: int = 2
    speakers_fallback_lp: int = 10
    gpu_pair_min_pool: int = 4


@dataclass(frozen=True)
class AllocationEvent:
    """One decision recorded during an allocation run."""
    tag: str
    message: str

    def __str__(self) -> str:
        return f"{self.tag}: {self.message}"


class EventLog:
    """Append-only decision log; every entry is mirrored to the logger."""

    def __init__(self) -> None:
        self._events: list[AllocationEvent] = []

    def record(self, tag: str, message: str, level: int = logging.INFO) -> None:
        event = AllocationEvent(tag, message)
        self._events.append(event)
        logger.log(level, str(event))

    @property
    def events(self) -> list[AllocationEvent]:
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)


@dataclass
class ProcessorPools:
    """Candidate processors for allocation after die restriction."""
    performance: list[int]
    efficiency: list[int]
    target_die: Optional[DieId] = None

    def contains(self, index: int) -> bool:
        return index in self.performance or index in self.efficiency


@dataclass
class AllocationResult:
    """Outcome of one allocation run."""
    bindings: dict[InstanceId, DeviceBinding]
    events: list[AllocationEvent] = field(default_factory=list)
    pools: Optional[ProcessorPools] = None
    categories: dict[InstanceId, Category] = field(default_factory=dict)
    skipped: bool = False       # No topology: nothing was touched
    aborted: bool = False       # Empty performance pool: stopped after reset
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return not (self.skipped or self.aborted or self.error)

    @property
    def lines(self) -> list[str]:
        return [str(e) for e in self.events]

    def devices_in(self, category: Category) -> list[InstanceId]:
        return [iid for iid, cat in self.categories.items() if cat == category]

    def with_tag(self, tag: str) -> list[AllocationEvent]:
        return [e for e in self.events if e.tag == tag]


def _fmt(lps: Iterable[int]) -> str:
    return "[" + ",".join(str(lp) for lp in lps) + "]"


def _lowest_unused(pool: list[int], consumed: set[int], allow_zero: bool) -> Optional[int]:
    for lp in sorted(pool):
        if lp in consumed or (lp == 0 and not allow_zero):
            continue
        return lp
    return None


def _highest_unused(pool: list[int], consumed: set[int], allow_zero: bool) -> Optional[int]:
    for lp in sorted(pool, reverse=True):
        if lp in consumed or (lp == 0 and not allow_zero):
            continue
        return lp
    return None


def resolve_pools(
    topology: CpuTopology,
    ccd_map: Optional[CcdMap],
    policy: TargetDiePolicy = TargetDiePolicy.HIGHEST,
    log: Optional[EventLog] = None,
) -> ProcessorPools:
    """Compute the performance and efficiency pools for a run.

    Starts from the primary processor of every core. On multi-die packages
    the pools are restricted to the target die; if that leaves nothing,
    every processor of the target die becomes the performance pool. Empty
    pools then fall back to all processors of the matching efficiency
    class (on the target die, if any).
    """
    log = log or EventLog()
    performance, efficiency = topology.primary_per_core()

    target_die: Optional[DieId] = None
    target_lps: list[int] = []
    if ccd_map is not None and ccd_map.is_multi_die:
        die_ids = ccd_map.die_ids
        target_die = die_ids[-1] if policy == TargetDiePolicy.HIGHEST else die_ids[0]
        target_lps = ccd_map.processors_on(target_die)
        on_die = set(target_lps)
        performance = [lp for lp in performance if lp in on_die]
        efficiency = [lp for lp in efficiency if lp in on_die]
        log.record(
            "AUTO.CCD",
            f"die ids={_fmt(die_ids)} target={target_die} targetLPs={_fmt(target_lps)} "
            f"filteredP={_fmt(performance)} filteredE={_fmt(efficiency)}",
        )
        if not performance and not efficiency and target_lps:
            performance = list(target_lps)
            log.record("AUTO.CCD", f"fallback -> all target die LPs as P pool {_fmt(performance)}")

    restrict = target_lps or None
    if not performance:
        all_performance = topology.performance_processors(restrict_to=restrict)
        if all_performance:
            performance = all_performance
            log.record("AUTO.POOLS", f"P fallback -> all P LPs {_fmt(performance)}")
    if not efficiency:
        all_efficiency = topology.efficiency_processors(restrict_to=restrict)
        if all_efficiency:
            efficiency = all_efficiency
            log.record("AUTO.POOLS", f"E fallback -> all E LPs {_fmt(efficiency)}")

    return ProcessorPools(
        performance=sorted(performance),
        efficiency=sorted(efficiency),
        target_die=target_die,
    )


class AllocationEngine:
    """Multi-phase interrupt affinity allocator."""

    def __init__(self, settings: Optional[AllocationSettings] = None) -> None:
        self._settings = settings or AllocationSettings()

    @property
    def settings(self) -> AllocationSettings:
        return self._settings

    def run(
        self,
        topology: Optional[CpuTopology],
        ccd_map: Optional[CcdMap],
        devices: list[DeviceDescriptor],
        bindings: Optional[dict[InstanceId, DeviceBinding]] = None,
    ) -> AllocationResult:
        """Allocate processors and interrupt settings for every device.

        Args:
            topology: Processor topology; None or empty makes the run a no-op.
            ccd_map: Optional die map.
            devices: Device inventory, in presentation order.
            bindings: Binding arena keyed by instance id. Missing entries
                are created once a topology is available; existing entries
                are updated in place. Without a topology the arena is left
                untouched.

        Returns:
            AllocationResult with the arena, the decision log and the pools.
            Never raises: failures are logged and reported in ``error``.
        """
        if bindings is None:
            bindings = {}

        log = EventLog()
        result = AllocationResult(bindings=bindings)
        try:
            self._run(topology, ccd_map, devices, bindings, log, result)
        except Exception as exc:
            logger.exception("Automatic allocation failed")
            log.record("AUTO.ERROR", f"{type(exc).__name__}: {exc}", level=logging.ERROR)
            result.error = str(exc) or type(exc).__name__
        result.events = log.events
        return result

    def _run(
        self,
        topology: Optional[CpuTopology],
        ccd_map: Optional[CcdMap],
        devices: list[DeviceDescriptor],
        bindings: dict[InstanceId, DeviceBinding],
        log: EventLog,
        result: AllocationResult,
    ) -> None:
        if not devices:
            log.record("AUTO", "no devices -> nothing to do")
            return
        if topology is None or topology.is_empty():
            log.record("AUTO", "no CPU topology available -> skipping", level=logging.WARNING)
            result.skipped = True
            return

        for device in devices:
            if device.instance_id not in bindings:
                bindings[device.instance_id] = DeviceBinding.for_device(device)

        log.record("AUTO", "allocation start")
        self._log_summary(devices, log)

        # Phase 0
        self._reset(devices, bindings, log)

        pools = resolve_pools(topology, ccd_map, self._settings.target_die, log)
        result.pools = pools
        if not pools.performance:
            log.record("AUTO.ABORT", "performance pool empty after fallbacks", level=logging.WARNING)
            result.aborted = True
            return
        log.record(
            "AUTO.POOLS",
            f"primary P={_fmt(pools.performance)} E={_fmt(pools.efficiency)}",
        )

        self._apply_moderation(devices, bindings, log)

        consumed: set[int] = set()
        anchor = self._allocate_audio(topology, pools, devices, bindings, consumed, log, result)
        self._allocate_microphones(pools, anchor, devices, bindings, consumed, log, result)
        self._allocate_hid(pools, devices, bindings, consumed, log, result)
        self._allocate_gpus(pools, devices, bindings, consumed, log, result)
        self._allocate_network(pools, devices, bindings, consumed, log, result)

        log.record("AUTO", f"allocation done consumed={_fmt(sorted(consumed))}")

    def _log_summary(self, devices: list[DeviceDescriptor], log: EventLog) -> None:
        counts: dict[DeviceKind, int] = {}
        for device in devices:
            counts[device.kind] = counts.get(device.kind, 0) + 1
        for kind in DeviceKind:
            if kind in counts:
                log.record("AUTO", f"devices kind={kind.name} count={counts[kind]}")

        wifi = [d for d in devices if classifier.is_wifi(d)]
        wired = [d for d in devices if classifier.is_wired_nic(d)]
        for device in wifi:
            log.record("AUTO.WIFI.DETECT", f'{device.instance_id} name="{device.name}"')
        for device in devices:
            if not classifier.is_skip_auto(device):
                continue
            tag = "AUTO.SKIP.USB" if device.kind == DeviceKind.USB else "AUTO.SKIP.AUDIO"
            log.record(tag, f"{device.instance_id} {classifier.skip_reason(device)}")

        log.record(
            "AUTO.SUMMARY",
            f"GPU={counts.get(DeviceKind.GPU, 0)} NET={len(wired)} USB={counts.get(DeviceKind.USB, 0)} "
            f"AUDIO={counts.get(DeviceKind.AUDIO, 0)} STOR={counts.get(DeviceKind.STORAGE, 0)} "
            f"WIFI={len(wifi)} WiFiOnly={bool(wifi) and not wired}",
        )

    def _reset(
        self,
        devices: list[DeviceDescriptor],
        bindings: dict[InstanceId, DeviceBinding],
        log: EventLog,
    ) -> None:
        for device in devices:
            binding = bindings[device.instance_id]
            before = format_mask(binding.affinity_mask)

            if classifier.is_wifi(device):
                binding.msi = MsiMode.ENABLED
                binding.priority = InterruptPriority.HIGH
                log.record(
                    "AUTO.WIFI.SKIP",
                    f"{device.instance_id} -> MSI=Enabled Prio=High (affinity/limit preserved)",
                )
                continue

            skip_auto = classifier.is_skip_auto(device)
            binding.selected.clear()
            binding.affinity_mask = 0
            binding.msi = MsiMode.ENABLED
            binding.limit = 0
            binding.priority = InterruptPriority.NORMAL if skip_auto else InterruptPriority.HIGH
            binding.rss_base_processor = None
            binding.rss_queues = None
            if not device.policy_locked:
                binding.policy = InterruptPolicy.MACHINE_DEFAULT

            log.record(
                "AUTO.RESET",
                f"{device.instance_id} kind={device.kind.name} maskBefore={before} "
                f"maskAfter={format_mask(binding.affinity_mask)} policy={binding.policy.value} "
                f"skipAuto={skip_auto}",
            )

    def _apply_moderation(
        self,
        devices: list[DeviceDescriptor],
        bindings: dict[InstanceId, DeviceBinding],
        log: EventLog,
    ) -> None:
        targets = [d for d in devices if classifier.is_imod_target(d)]
        if not any(bindings[d.instance_id].imod_auto for d in targets):
            log.record("AUTO.IMOD", "no controllers with automatic moderation -> skipping")
            return

        for device in targets:
            binding = bindings[device.instance_id]
            if not binding.imod_auto:
                log.record("AUTO.IMOD.SKIP", f"{device.instance_id} automatic moderation off")
                continue

            previous = binding.imod_interval
            keyboard_and_mouse = classifier.has_role(device, "Keyboard") and classifier.has_role(device, "Mouse")
            binding.imod_interval = 0 if keyboard_and_mouse else self._settings.imod_default_interval
            log.record(
                "AUTO.IMOD",
                f'{device.instance_id} -> 0x{binding.imod_interval:X} '
                f'(roles="{device.usb_roles}", prev={previous})',
            )

    def _assign(
        self,
        device: DeviceDescriptor,
        binding: DeviceBinding,
        lps: list[int],
    ) -> None:
        """Make ``lps`` the device's selection and recompute only its mask."""
        binding.selected = set(lps)
        binding.affinity_mask = affinity_mask(binding.selected)
        if not device.policy_locked:
            binding.policy = InterruptPolicy.SPECIFIC_CPU

    def _allocate_audio(
        self,
        topology: CpuTopology,
        pools: ProcessorPools,
        devices: list[DeviceDescriptor],
        bindings: dict[InstanceId, DeviceBinding],
        consumed: set[int],
        log: EventLog,
        result: AllocationResult,
    ) -> Optional[int]:
        """Phase 1. Returns the microphone anchor processor."""
        audio = [d for d in devices if classifier.is_real_audio(d)]
        log.record("AUTO.AUDIO", f"phase start devices={len(audio)}")

        first_any: Optional[int] = None
        first_speakers: Optional[int] = None
        for device in audio:
            lp, source = self._pick_audio_processor(topology, pools, device, consumed)
            consumed.add(lp)
            self._assign(device, bindings[device.instance_id], [lp])
            result.categories[device.instance_id] = Category.AUDIO
            if first_any is None:
                first_any = lp
            if source == "speakers" and first_speakers is None:
                first_speakers = lp
            log.record(
                "AUTO.AUDIO",
                f"{device.instance_id} -> LPs=[{lp}] source={source} "
                f"policy={bindings[device.instance_id].policy.value}",
            )

        anchor = first_speakers if first_speakers is not None else first_any
        log.record("AUTO.AUDIO", f"phase done micAnchor={anchor}")
        return anchor

    def _pick_audio_processor(
        self,
        topology: CpuTopology,
        pools: ProcessorPools,
        device: DeviceDescriptor,
        consumed: set[int],
    ) -> tuple[int, str]:
        lp = _lowest_unused(pools.efficiency, consumed, allow_zero=True)
        if lp is not None:
            return lp, "efficiency"

        if classifier.mentions_speakers(device):
            count = topology.logical_count
            for fixed in (self._settings.speakers_primary_lp, self._settings.speakers_fallback_lp):
                if count > fixed and fixed not in consumed and pools.contains(fixed):
                    return fixed, "speakers"

        lp = _lowest_unused(pools.performance, consumed, allow_zero=False)
        if lp is not None:
            return lp, "performance"
        lp = _lowest_unused(pools.performance, consumed, allow_zero=True)
        if lp is not None:
            return lp, "performance+0"
        return pools.performance[0], "pool-first"

    def _allocate_microphones(
        self,
        pools: ProcessorPools,
        anchor: Optional[int],
        devices: list[DeviceDescriptor],
        bindings: dict[InstanceId, DeviceBinding],
        consumed: set[int],
        log: EventLog,
        result: AllocationResult,
    ) -> None:
        """Phase 2."""
        microphones = [d for d in devices if classifier.is_microphone_only(d)]
        log.record("AUTO.MIC", f"phase start devices={len(microphones)} anchor={anchor}")

        for device in microphones:
            if anchor is not None:
                lp, source = anchor, "anchor"
            else:
                lp, source = self._fresh_processor(pools, consumed)
            consumed.add(lp)
            self._assign(device, bindings[device.instance_id], [lp])
            result.categories[device.instance_id] = Category.MICROPHONE
            log.record("AUTO.MIC", f"{device.instance_id} -> LPs=[{lp}] source={source}")

    def _fresh_processor(self, pools: ProcessorPools, consumed: set[int]) -> tuple[int, str]:
        lp = _lowest_unused(pools.efficiency, consumed, allow_zero=True)
        if lp is not None:
            return lp, "efficiency"
        lp = _lowest_unused(pools.performance, consumed, allow_zero=False)
        if lp is not None:
            return lp, "performance"
        lp = _lowest_unused(pools.performance, consumed, allow_zero=True)
        if lp is not None:
            return lp, "performance+0"
        return pools.performance[0], "pool-first"

    def _allocate_hid(
        self,
        pools: ProcessorPools,
        devices: list[DeviceDescriptor],
        bindings: dict[InstanceId, DeviceBinding],
        consumed: set[int],
        log: EventLog,
        result: AllocationResult,
    ) -> None:
        """Phase 3."""
        hid = [d for d in devices if classifier.is_hid_device(d)]
        log.record("AUTO.HID", f"phase start devices={len(hid)}")

        for device in hid:
            lp = _lowest_unused(pools.performance, consumed, allow_zero=False)
            if lp is None:
                lp = _highest_unused(pools.performance, consumed, allow_zero=False)
            if lp is None:
                lp = _lowest_unused(pools.performance, consumed, allow_zero=True)
            if lp is None:
                log.record("AUTO.HID", f"{device.instance_id} -> no available LP (P list exhausted)")
                continue

            consumed.add(lp)
            self._assign(device, bindings[device.instance_id], [lp])
            result.categories[device.instance_id] = Category.HID
            log.record(
                "AUTO.HID",
                f'{device.instance_id} -> LPs=[{lp}] roles="{device.usb_roles}" '
                f"policy={bindings[device.instance_id].policy.value}",
            )

    def _allocate_gpus(
        self,
        pools: ProcessorPools,
        devices: list[DeviceDescriptor],
        bindings: dict[InstanceId, DeviceBinding],
        consumed: set[int],
        log: EventLog,
        result: AllocationResult,
    ) -> None:
        """Phase 4."""
        gpus = [d for d in devices if d.kind == DeviceKind.GPU]
        if not gpus:
            log.record("AUTO.GPU", "no GPU devices -> skipping")
            return

        lps = self._pick_gpu_processors(pools, consumed)
        if not lps:
            log.record("AUTO.GPU", f"no available LP pair for {len(gpus)} device(s)")
            return

        consumed.update(lps)
        for device in gpus:
            self._assign(device, bindings[device.instance_id], lps)
            result.categories[device.instance_id] = Category.GPU
            log.record(
                "AUTO.GPU",
                f"{device.instance_id} -> LPs={_fmt(lps)} "
                f"policy={bindings[device.instance_id].policy.value}",
            )

    def _pick_gpu_processors(self, pools: ProcessorPools, consumed: set[int]) -> list[int]:
        if len(pools.performance) >= self._settings.gpu_pair_min_pool:
            candidates = sorted(lp for lp in pools.performance if lp != 0 and lp not in consumed)
            for low, high in zip(candidates, candidates[1:]):
                if high - low == 1:
                    return [low, high]
            if len(candidates) >= 2:
                return candidates[:2]
            return []

        lp = _highest_unused(pools.performance, consumed, allow_zero=False)
        if lp is None:
            lp = _highest_unused(pools.performance, consumed, allow_zero=True)
        return [lp] if lp is not None else []

    def _allocate_network(
        self,
        pools: ProcessorPools,
        devices: list[DeviceDescriptor],
        bindings: dict[InstanceId, DeviceBinding],
        consumed: set[int],
        log: EventLog,
        result: AllocationResult,
    ) -> None:
        """Phase 5."""
        nics = [d for d in devices if classifier.is_wired_nic(d)]
        if not nics:
            log.record("AUTO.NET", "no wired adapters -> skipping NET affinity")
            return

        lp = _highest_unused(pools.performance, consumed, allow_zero=False)
        if lp is None:
            lp = _lowest_unused(pools.performance, consumed, allow_zero=True)
        if lp is None:
            log.record("AUTO.NET", f"no available LP for {len(nics)} adapter(s)")
            return

        consumed.add(lp)
        for device in nics:
            binding = bindings[device.instance_id]
            self._assign(device, binding, [lp])
            result.categories[device.instance_id] = Category.NET
            if device.policy_locked:
                # Single RSS queue keeps receive processing on this LP only
                binding.rss_base_processor = lp
                binding.rss_queues = 1
                log.record(
                    "AUTO.NET",
                    f"{device.instance_id} -> LPs=[{lp}] policy={binding.policy.value} queues=1",
                )
            else:
                log.record("AUTO.NET", f"{device.instance_id} -> LPs=[{lp}] policy={binding.policy.value}")
