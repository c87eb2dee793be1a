"""DPDK port and KNI environment checks.

Only registered when the ``dpdk`` (and for KNI, ``kni``) features are
enabled for this installation.
"""

from __future__ import annotations

import os
import re
from functools import partial

from scapy.arch import get_if_addr
from scapy.interfaces import get_if_list

from capharness.config import RunConfiguration
from capharness.errors import SkipUnit
from capharness.features import Feature
from capharness.registry import TestRegistry
from capharness.suites._helpers import expect

PCI_DRIVERS_DIR = "/sys/bus/pci/drivers"
DPDK_DRIVERS = ("vfio-pci", "igb_uio", "uio_pci_generic")
KNI_DEVICE = "/dev/kni"

_PCI_ADDR = re.compile(r"^[0-9a-f]{4}:[0-9a-f]{2}:[0-9a-f]{2}\.[0-7]$")


def dpdk_bound_ports(drivers_dir: str = PCI_DRIVERS_DIR) -> list[str]:
    """PCI addresses bound to a DPDK-compatible driver, in port-id order."""
    ports: list[str] = []
    for driver in DPDK_DRIVERS:
        path = os.path.join(drivers_dir, driver)
        if not os.path.isdir(path):
            continue
        ports.extend(name for name in os.listdir(path) if _PCI_ADDR.match(name))
    return sorted(ports)


def hugepages_total(meminfo: str = "/proc/meminfo") -> int:
    try:
        with open(meminfo, "r", encoding="utf-8") as f:
            for line in f:
                if line.startswith("HugePages_Total:"):
                    return int(line.split()[1])
    except OSError:
        return 0
    return 0


def check_dpdk_init_device(config: RunConfiguration) -> None:
    if config.hardware_port is None:
        raise SkipUnit("no DPDK port configured (-d)")
    expect(hugepages_total() > 0, "No hugepages reserved for DPDK")
    ports = dpdk_bound_ports()
    expect(
        config.hardware_port < len(ports),
        f"DPDK port {config.hardware_port} not found; {len(ports)} port(s) bound: {ports}",
    )


def check_kni_device(config: RunConfiguration) -> None:
    if not config.kni_ip:
        raise SkipUnit("no KNI IP configured (-k)")
    expect(os.path.exists(KNI_DEVICE), f"{KNI_DEVICE} missing; is rte_kni loaded?")
    for iface in get_if_list():
        try:
            addr = get_if_addr(iface)
        except OSError:
            continue
        expect(addr != config.kni_ip, f"KNI IP {config.kni_ip} is already used by {iface}")


def declare(registry: TestRegistry, config: RunConfiguration) -> None:
    registry.register("dpdk_init_device", "dpdk;dpdk-init;skip_mem_leak_check",
                      partial(check_dpdk_init_device, config), requires=[Feature.DPDK])
    registry.register("kni_device", "dpdk;kni", partial(check_kni_device, config),
                      requires=[Feature.DPDK, Feature.KNI])
