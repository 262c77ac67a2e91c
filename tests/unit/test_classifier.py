"""Unit tests for device role classification."""

import pytest

from factories import audio, gpu, nic, usb, wifi
from irq_affinity.domain.entities.device import DeviceDescriptor, DeviceKind
from irq_affinity.domain.services import classifier
from irq_affinity.domain.services.classifier import DeviceRole


@pytest.mark.unit
class TestRoles:
    """Test USB role parsing and HID predicates."""

    def test_parse_roles(self):
        """Entries are trimmed and empty entries dropped."""
        assert classifier.parse_roles(" Keyboard , Mouse ,,") == ("Keyboard", "Mouse")
        assert classifier.parse_roles("") == ()
        assert classifier.parse_roles("   ") == ()
        assert classifier.parse_roles(None) == ()

    def test_role_match_is_case_insensitive(self):
        """Role names compare case-insensitively but exactly."""
        device = usb("keyboard,MOUSE")
        assert classifier.has_role(device, "Keyboard")
        assert classifier.has_role(device, "mouse")
        assert not classifier.has_role(usb("Keyboards"), "Keyboard")

    def test_only_usb_has_roles(self):
        """Role text on non-USB devices is ignored."""
        device = DeviceDescriptor(
            instance_id="PCI\\VEN_1234&DEV_0001\\1",
            name="Odd device",
            kind=DeviceKind.OTHER,
            usb_roles="Keyboard",
        )
        assert not classifier.has_role(device, "Keyboard")
        assert not classifier.is_hid_device(device)

    def test_hid_device(self):
        """Keyboard, mouse or gamepad make a HID controller."""
        assert classifier.is_hid_device(usb("Gamepad"))
        assert classifier.is_hid_device(usb("Microphone,Mouse"))
        assert not classifier.is_hid_device(usb("Microphone"))

    def test_microphone_only(self):
        """A microphone without HID roles is microphone-only."""
        assert classifier.is_microphone_only(usb("Microphone"))
        assert not classifier.is_microphone_only(usb("Microphone,Keyboard"))

    def test_imod_target(self):
        """Moderation needs an xHCI controller with HID devices attached."""
        assert classifier.is_imod_target(usb("Keyboard"))
        assert not classifier.is_imod_target(usb("Keyboard", xhci=False))
        assert not classifier.is_imod_target(usb("Keyboard", has_devices=False))
        assert not classifier.is_imod_target(usb("Microphone"))


@pytest.mark.unit
class TestAudio:
    """Test display, S/PDIF and real audio detection."""

    def test_display_audio_by_pci_id(self):
        """Known display audio functions match by vendor and device id."""
        assert classifier.is_display_audio_id("PCI\\VEN_10DE&DEV_228B&SUBSYS_00000000\\4&1", "")
        assert classifier.is_display_audio_id("PCI\\VEN_1002&DEV_AB38\\1", "") is False
        assert classifier.is_display_audio_id("PCI\\VEN_1002&DEV_AA01\\1", "")
        assert classifier.is_display_audio_id("PCI\\VEN_8086&DEV_2812\\1", "")

    def test_display_audio_by_name(self):
        """Display audio drivers match by name."""
        assert classifier.is_display_audio_id("", "NVIDIA High Definition Audio")
        assert classifier.is_display_audio_id("", "Intel(R) Display Audio")
        assert not classifier.is_display_audio_id("", "Realtek High Definition Audio")

    def test_display_audio_endpoints(self):
        """Endpoint names pointing at a monitor match."""
        assert classifier.is_display_audio_endpoints("LG ULTRAGEAR (HDMI)")
        assert classifier.is_display_audio_endpoints("Monitor speakers")
        assert classifier.is_display_audio_endpoints("VG27AQ")
        assert not classifier.is_display_audio_endpoints("Speakers, Headphones")
        assert not classifier.is_display_audio_endpoints("[UNKNOWN]")
        assert not classifier.is_display_audio_endpoints("  ")

    def test_model_code_needs_a_digit(self):
        """Bare upper-case words without digits are not model codes."""
        assert not classifier.is_display_audio_endpoints("SPEAKERS")

    def test_spdif(self):
        """Digital outputs are recognised by endpoint name."""
        assert classifier.is_spdif_endpoints("Realtek Digital Output (S/PDIF)")
        assert classifier.is_spdif_endpoints("Optical out")
        assert not classifier.is_spdif_endpoints("")

    def test_real_audio(self):
        """Real audio excludes display and digital outputs."""
        assert classifier.is_real_audio(audio())
        assert not classifier.is_real_audio(audio(name="NVIDIA High Definition Audio"))
        assert not classifier.is_real_audio(audio(endpoints="SPDIF Out"))
        assert not classifier.is_real_audio(gpu())

    def test_mentions_speakers(self):
        """Speakers heuristic is a case-insensitive substring match."""
        assert classifier.mentions_speakers(audio(endpoints="Headphones, SPEAKERS"))
        assert not classifier.mentions_speakers(audio(endpoints="Headphones"))
        assert not classifier.mentions_speakers(audio(endpoints=""))


@pytest.mark.unit
class TestNetworkAndSkip:
    """Test network and skip-auto predicates."""

    def test_wifi_flag_wins(self):
        """A wired-kind adapter flagged as Wi-Fi is not a wired NIC."""
        assert classifier.is_wifi(wifi())
        assert not classifier.is_wired_nic(wifi())
        assert classifier.is_wired_nic(nic())

    def test_wifi_kind(self):
        """Wi-Fi kind is Wi-Fi without the flag."""
        device = DeviceDescriptor(instance_id="PCI\\W\\1", name="Wireless", kind=DeviceKind.WIFI_NET)
        assert classifier.is_wifi(device)

    def test_skip_auto(self):
        """USB without roles and non-real audio stay at machine defaults."""
        assert classifier.is_skip_auto(usb(""))
        assert classifier.is_skip_auto(audio(name="AMD High Definition Audio Device"))
        assert classifier.is_skip_auto(audio(endpoints="Coaxial"))
        assert not classifier.is_skip_auto(usb("Keyboard"))
        assert not classifier.is_skip_auto(audio())
        assert not classifier.is_skip_auto(gpu())

    def test_skip_reason(self):
        """Reasons name why the device is left alone."""
        assert "HID" in classifier.skip_reason(usb(""))
        assert "S/PDIF" in classifier.skip_reason(audio(endpoints="S/PDIF"))


@pytest.mark.unit
class TestClassify:
    """Test the combined role set."""

    def test_keyboard_mouse_controller(self):
        """An xHCI controller with keyboard and mouse."""
        roles = classifier.classify(usb("Keyboard,Mouse"))
        assert roles == frozenset({
            DeviceRole.KEYBOARD,
            DeviceRole.MOUSE,
            DeviceRole.HID,
            DeviceRole.IMOD_TARGET,
        })

    def test_display_audio(self):
        """Display audio is tagged and skipped."""
        roles = classifier.classify(audio(endpoints="DELL U2720Q (DisplayPort)"))
        assert DeviceRole.DISPLAY_AUDIO in roles
        assert DeviceRole.SKIP_AUTO in roles
        assert DeviceRole.REAL_AUDIO not in roles

    def test_other_kinds(self):
        """GPU and wired NIC get their kind role only."""
        assert classifier.classify(gpu()) == frozenset({DeviceRole.GPU})
        assert classifier.classify(nic()) == frozenset({DeviceRole.WIRED_NIC})
        assert classifier.classify(wifi()) == frozenset({DeviceRole.WIFI})

    def test_classification_is_stable(self):
        """Classifying twice gives the same set."""
        device = usb("Microphone")
        assert classifier.classify(device) == classifier.classify(device)
