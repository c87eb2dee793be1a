"""BPF filters, live and offline."""

from __future__ import annotations

import os
import shutil
import tempfile
import time
from functools import partial

from scapy.arch.common import compile_filter
from scapy.config import conf
from scapy.error import Scapy_Exception
from scapy.layers.inet import IP, TCP, UDP
from scapy.layers.l2 import ARP, Ether
from scapy.sendrecv import AsyncSniffer, sendp, sniff
from scapy.utils import wrpcap

from capharness.config import RunConfiguration
from capharness.errors import SkipUnit
from capharness.registry import TestRegistry
from capharness.suites._helpers import expect, find_iface_by_ip

DLT_EN10MB = 1

VALID_FILTERS = (
    "tcp",
    "udp and port 53",
    "host 10.0.0.1 and not arp",
    "ether src 00:11:22:33:44:55",
    "ip6 or (ip and tcp[tcpflags] & tcp-syn != 0)",
    "vlan 100",
)

INVALID_FILTERS = (
    "tcp and and udp",
    "port 99999999",
    "host not-an-address-...",
)


def check_filters_live(config: RunConfiguration) -> None:
    iface = find_iface_by_ip(config.target_ip)
    sniffer = AsyncSniffer(iface=iface, filter="arp", store=True)
    sniffer.start()
    try:
        time.sleep(0.5)
        request = Ether(dst="ff:ff:ff:ff:ff:ff") / ARP(op=1, pdst=config.target_ip)
        sendp([request] * 3, iface=iface, verbose=config.verbose)
        time.sleep(1)
    finally:
        captured = sniffer.stop()
    expect(captured, "Filter 'arp' captured nothing")
    expect(all(p.haslayer(ARP) for p in captured), "Non-ARP packet passed the 'arp' filter")


def _compile(expr: str) -> None:
    try:
        compile_filter(expr, linktype=DLT_EN10MB)
    except ImportError as e:
        raise SkipUnit("libpcap is not available") from e


def check_filters_general_bpf_str() -> None:
    for expr in VALID_FILTERS:
        try:
            _compile(expr)
        except Scapy_Exception as e:
            raise AssertionError(f"Valid filter rejected: {expr!r}: {e}") from e
    for expr in INVALID_FILTERS:
        try:
            _compile(expr)
        except Scapy_Exception:
            continue
        raise AssertionError(f"Invalid filter compiled: {expr!r}")


def check_filters_offline() -> None:
    # scapy applies offline filters through tcpdump
    if shutil.which(conf.prog.tcpdump) is None:
        raise SkipUnit("tcpdump is not available")
    packets = (
        [Ether() / IP(dst="10.0.0.1") / TCP(dport=80)] * 4
        + [Ether() / IP(dst="10.0.0.2") / UDP(dport=53)] * 3
    )
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "mixed.pcap")
        wrpcap(path, packets)
        udp_only = sniff(offline=path, filter="udp")
        host_only = sniff(offline=path, filter="host 10.0.0.1")
    expect(len(udp_only) == 3, f"'udp' matched {len(udp_only)} packets, expected 3")
    expect(len(host_only) == 4, f"'host 10.0.0.1' matched {len(host_only)} packets, expected 4")


def declare(registry: TestRegistry, config: RunConfiguration) -> None:
    registry.register("filters_live", "filters", partial(check_filters_live, config))
    registry.register("filters_general_bpf_str", "no_network;filters;skip_mem_leak_check",
                      check_filters_general_bpf_str)
    registry.register("filters_offline", "no_network;filters", check_filters_offline)
