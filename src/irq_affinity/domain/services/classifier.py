"""Device role classification.

Pure predicates over DeviceDescriptor fields. No predicate depends on
anything but the descriptor, so classifying the same descriptor always
yields the same role set. Text predicates treat empty or whitespace-only
input as "no match".
"""

from __future__ import annotations

import re
from enum import Enum

from irq_affinity.domain.entities.device import DeviceDescriptor, DeviceKind

HID_ROLES = ("Keyboard", "Mouse", "Gamepad")
MICROPHONE_ROLE = "Microphone"

# PCI functions that only ever expose display (HDMI/DP) audio
_DISPLAY_AUDIO_ID = re.compile(
    r"\\VEN_10DE&(DEV_1A[0-9A-F]{2}|DEV_22[0-9A-F]{2}|DEV_26[0-9A-F]{2}|DEV_28[0-9A-F]{2})"
    r"|\\VEN_1002&DEV_AA[0-9A-F]{2}"
    r"|\\VEN_8086&DEV_28[0-9A-F]{2}",
    re.IGNORECASE,
)
_DISPLAY_AUDIO_NAME = re.compile(
    r"Display Audio|HDMI Audio|NVIDIA High Definition Audio|AMD High Definition Audio",
    re.IGNORECASE,
)
_DISPLAY_AUDIO_ENDPOINT = re.compile(
    r"hdmi|display audio|monitor|displayport|digital audio|dp\b",
    re.IGNORECASE,
)
# Bare monitor model codes such as "VG27AQ1A" reported as endpoint names
_MODEL_CODE = re.compile(r"^[A-Z0-9]{3,}$")
_SPDIF_ENDPOINT = re.compile(r"s/?pdif|optical|coaxial", re.IGNORECASE)
_SPEAKERS_ENDPOINT = re.compile(r"speaker", re.IGNORECASE)

_UNKNOWN_ENDPOINTS = "[UNKNOWN]"


class DeviceRole(Enum):
    """Role tags attached to a device by classify()."""
    KEYBOARD = "keyboard"
    MOUSE = "mouse"
    GAMEPAD = "gamepad"
    MICROPHONE = "microphone"
    HID = "hid"
    MICROPHONE_ONLY = "microphone_only"
    IMOD_TARGET = "imod_target"
    GPU = "gpu"
    REAL_AUDIO = "real_audio"
    DISPLAY_AUDIO = "display_audio"
    SPDIF_AUDIO = "spdif_audio"
    WIFI = "wifi"
    WIRED_NIC = "wired_nic"
    STORAGE = "storage"
    SKIP_AUTO = "skip_auto"


def parse_roles(text: str | None) -> tuple[str, ...]:
    """Split a comma-separated role list into trimmed, non-empty names."""
    if not text or not text.strip():
        return ()
    return tuple(part.strip() for part in text.split(",") if part.strip())


def has_role(descriptor: DeviceDescriptor, role: str) -> bool:
    """Case-insensitive exact role match; only USB devices carry roles."""
    if descriptor.kind != DeviceKind.USB:
        return False
    wanted = role.casefold()
    return any(entry.casefold() == wanted for entry in parse_roles(descriptor.usb_roles))


def is_hid_device(descriptor: DeviceDescriptor) -> bool:
    return any(has_role(descriptor, role) for role in HID_ROLES)


def is_microphone_only(descriptor: DeviceDescriptor) -> bool:
    return has_role(descriptor, MICROPHONE_ROLE) and not is_hid_device(descriptor)


def is_imod_target(descriptor: DeviceDescriptor) -> bool:
    """xHCI controller with attached HID devices, eligible for moderation tuning."""
    return (
        descriptor.kind == DeviceKind.USB
        and descriptor.usb_is_xhci
        and descriptor.usb_has_devices
        and is_hid_device(descriptor)
    )


def is_display_audio_id(instance_id: str, name: str) -> bool:
    if instance_id and _DISPLAY_AUDIO_ID.search(instance_id):
        return True
    return bool(name) and _DISPLAY_AUDIO_NAME.search(name) is not None


def is_display_audio_endpoints(text: str | None) -> bool:
    if not text or not text.strip():
        return False
    stripped = text.strip()
    if stripped == _UNKNOWN_ENDPOINTS:
        return False
    if _DISPLAY_AUDIO_ENDPOINT.search(stripped):
        return True
    return _MODEL_CODE.match(stripped) is not None and any(ch.isdigit() for ch in stripped)


def is_spdif_endpoints(text: str | None) -> bool:
    if not text or not text.strip():
        return False
    return _SPDIF_ENDPOINT.search(text) is not None


def is_display_audio(descriptor: DeviceDescriptor) -> bool:
    """Audio function belonging to a display output (HDMI/DisplayPort)."""
    if descriptor.kind != DeviceKind.AUDIO:
        return False
    return is_display_audio_id(descriptor.instance_id, descriptor.name) or is_display_audio_endpoints(
        descriptor.audio_endpoints
    )


def is_spdif_audio(descriptor: DeviceDescriptor) -> bool:
    return descriptor.kind == DeviceKind.AUDIO and is_spdif_endpoints(descriptor.audio_endpoints)


def is_real_audio(descriptor: DeviceDescriptor) -> bool:
    return (
        descriptor.kind == DeviceKind.AUDIO
        and not is_display_audio(descriptor)
        and not is_spdif_audio(descriptor)
    )


def mentions_speakers(descriptor: DeviceDescriptor) -> bool:
    text = descriptor.audio_endpoints
    if not text or not text.strip():
        return False
    return _SPEAKERS_ENDPOINT.search(text) is not None


def is_wifi(descriptor: DeviceDescriptor) -> bool:
    return descriptor.wifi or descriptor.kind == DeviceKind.WIFI_NET


def is_wired_nic(descriptor: DeviceDescriptor) -> bool:
    return descriptor.kind == DeviceKind.WIRED_NET and not is_wifi(descriptor)


def is_skip_auto(descriptor: DeviceDescriptor) -> bool:
    """Device kept at machine defaults with normal priority by the planner."""
    if descriptor.kind == DeviceKind.USB:
        return not parse_roles(descriptor.usb_roles)
    return is_display_audio(descriptor) or is_spdif_audio(descriptor)


def skip_reason(descriptor: DeviceDescriptor) -> str:
    if descriptor.kind == DeviceKind.USB:
        return "no HID roles (manual/reset only)"
    if is_spdif_audio(descriptor):
        return "digital S/PDIF audio"
    return "display/HDMI audio"


def classify(descriptor: DeviceDescriptor) -> frozenset[DeviceRole]:
    """Tag a device with every role that applies to it."""
    roles: set[DeviceRole] = set()

    if has_role(descriptor, "Keyboard"):
        roles.add(DeviceRole.KEYBOARD)
    if has_role(descriptor, "Mouse"):
        roles.add(DeviceRole.MOUSE)
    if has_role(descriptor, "Gamepad"):
        roles.add(DeviceRole.GAMEPAD)
    if has_role(descriptor, MICROPHONE_ROLE):
        roles.add(DeviceRole.MICROPHONE)
    if is_hid_device(descriptor):
        roles.add(DeviceRole.HID)
    if is_microphone_only(descriptor):
        roles.add(DeviceRole.MICROPHONE_ONLY)
    if is_imod_target(descriptor):
        roles.add(DeviceRole.IMOD_TARGET)

    if descriptor.kind == DeviceKind.GPU:
        roles.add(DeviceRole.GPU)
    elif descriptor.kind == DeviceKind.STORAGE:
        roles.add(DeviceRole.STORAGE)

    if is_display_audio(descriptor):
        roles.add(DeviceRole.DISPLAY_AUDIO)
    if is_spdif_audio(descriptor):
        roles.add(DeviceRole.SPDIF_AUDIO)
    if is_real_audio(descriptor):
        roles.add(DeviceRole.REAL_AUDIO)

    if is_wifi(descriptor):
        roles.add(DeviceRole.WIFI)
    if is_wired_nic(descriptor):
        roles.add(DeviceRole.WIRED_NIC)
    if is_skip_auto(descriptor):
        roles.add(DeviceRole.SKIP_AUTO)

    return frozenset(roles)
