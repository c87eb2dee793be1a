"""Bundled capture-library test suites.

Declaration order is run order.  Each module's ``declare()`` adds its units
to the registry; actions read settings from the run configuration they were
declared with.
"""

from __future__ import annotations

from capharness.config import RunConfiguration
from capharness.registry import TestRegistry
from capharness.suites import addresses, files, filters, hardware, live, protocols, reassembly


def build_registry(config: RunConfiguration) -> TestRegistry:
    """Declare every bundled unit, omitting those the features rule out."""
    registry = TestRegistry(config.features)
    addresses.declare(registry, config)
    files.declare(registry, config)
    live.declare(registry, config)
    filters.declare(registry, config)
    protocols.declare(registry, config)
    hardware.declare(registry, config)
    reassembly.declare(registry, config)
    live.declare_raw_sockets(registry, config)
    return registry


def library_version() -> str:
    from scapy import VERSION

    return f"scapy {VERSION}"
