"""
IRQ Affinity - automatic interrupt affinity planning

Binds interrupt-heavy devices (audio, HID, GPU, network, USB controllers)
to logical processors chosen from the CPU topology: efficiency cores for
background audio, core 0 avoided for latency-sensitive input, adjacent
performance cores for GPUs.
"""

__version__ = "0.1.0"
