"""Pytest configuration and shared fixtures for affinity planner tests."""

from __future__ import annotations

import logging

import pytest
from prometheus_client import CollectorRegistry

from factories import audio, gpu, nic, smt_topology, usb
from irq_affinity.domain.entities.device import DeviceDescriptor
from irq_affinity.domain.entities.topology import CpuTopology
from irq_affinity.infrastructure.config import Config, get_config
from irq_affinity.infrastructure.container import Container
from irq_affinity.infrastructure.metrics import MetricsRegistry


@pytest.fixture(autouse=True)
def reset_container():
    """Reset the DI container and cached config before each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    Container.reset()
    get_config.cache_clear()
    yield
    Container.reset()
    get_config.cache_clear()
    # setup_logging replaces the root handlers
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration."""
    return Config()


@pytest.fixture
def metrics() -> MetricsRegistry:
    """Metrics bound to a private registry."""
    return MetricsRegistry(CollectorRegistry())


@pytest.fixture
def scenario_topology() -> CpuTopology:
    """8 logical processors, 4 SMT performance cores, single die."""
    return smt_topology(cores=4)


@pytest.fixture
def hybrid_topology() -> CpuTopology:
    """4 SMT performance cores (LPs 0-7) and 4 efficiency cores (LPs 8-11)."""
    return smt_topology(cores=4, efficiency_cores=4)


@pytest.fixture
def scenario_devices() -> list[DeviceDescriptor]:
    """Speakers audio, keyboard+mouse xHCI controller, GPU and wired NIC."""
    return [audio(), usb("Keyboard,Mouse"), gpu(), nic()]


# Pytest markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
